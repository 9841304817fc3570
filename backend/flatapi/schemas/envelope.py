from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


REQUEST_KEYS = frozenset({"filter", "data", "binary64", "binary64gz"})
BINARY_KEYS = ("binary64", "binary64gz")


class _BinaryFields(BaseModel):
    binary64: str | None = None
    binary64gz: str | None = None

    @model_validator(mode="after")
    def single_binary_field(self):
        if self.binary64 is not None and self.binary64gz is not None:
            raise ValueError("Only one of binary64 and binary64gz may be present.")
        return self


class RequestEnvelope(_BinaryFields):
    model_config = ConfigDict(extra="forbid", frozen=True)

    filter: dict[str, Any] | None = None
    data: dict[str, Any] | None = None


class MetaDetail(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    field: str
    message: str


class Meta(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    code: int
    message: str
    time: int = Field(ge=0)
    page: int | None = Field(default=None, ge=1)
    page_size: int | None = Field(default=None, ge=1)
    page_total: int | None = Field(default=None, ge=0)
    total: int | None = Field(default=None, ge=0)
    details: list[MetaDetail] | None = None

    @model_validator(mode="after")
    def totals_travel_together(self) -> "Meta":
        if (self.page_total is None) != (self.total is None):
            raise ValueError("page_total and total must both be present or both be absent.")
        return self


class ErrorPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    message: str


class ResponseEnvelope(_BinaryFields):
    model_config = ConfigDict(extra="forbid", frozen=True)

    meta: Meta
    data: Any = None
    error: ErrorPayload | None = None
