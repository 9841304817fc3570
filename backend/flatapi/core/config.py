import os
import sys
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "flatapi"
    app_env: str = "local"
    api_path_prefix: str = ""

    log_level: str = "INFO"
    metrics_enabled: bool = False
    max_request_body_bytes: int = 2_000_000
    binary_max_decoded_bytes: int = 10_000_000
    validate_binary_eagerly: bool = True

    default_page_size: int = 25
    max_page_size: int = 200

    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    expose_route_catalog: bool = True
    handler_modules: str = ""
    allow_late_registration: bool = False

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    @property
    def handler_module_paths(self) -> list[str]:
        return [path.strip() for path in self.handler_modules.split(",") if path.strip()]

    @model_validator(mode="after")
    def validate_production_guardrails(self) -> "Settings":
        if self.default_page_size < 1 or self.max_page_size < 1:
            raise ValueError("DEFAULT_PAGE_SIZE and MAX_PAGE_SIZE must be positive.")
        if self.default_page_size > self.max_page_size:
            raise ValueError("DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE.")
        if self.api_path_prefix and not self.api_path_prefix.startswith("/"):
            raise ValueError("API_PATH_PREFIX must start with '/'.")

        if self.app_env.lower() != "production":
            return self

        if "*" in self.cors_origins:
            raise ValueError("Production forbids wildcard CORS_ALLOW_ORIGINS.")
        if self.max_request_body_bytes <= 0 or self.max_request_body_bytes > 50_000_000:
            raise ValueError("Production requires MAX_REQUEST_BODY_BYTES between 1 and 50000000.")
        if self.binary_max_decoded_bytes <= 0:
            raise ValueError("Production requires a positive BINARY_MAX_DECODED_BYTES.")
        return self


@lru_cache
def get_settings() -> Settings:
    app_env = os.getenv("APP_ENV", "").lower()
    is_pytest_runtime = "pytest" in sys.modules
    if app_env == "test" or (not app_env and is_pytest_runtime):
        return Settings(
            app_env="test",
            cors_allow_origins="http://testserver",
            handler_modules="",
        )
    return Settings()
