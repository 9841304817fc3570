from collections.abc import Awaitable, Callable
from typing import Any

# Verifies an opaque token and returns the principal, or None when rejected.
Authenticator = Callable[[str], Any | Awaitable[Any]]


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an Authorization header value.

    The ``Bearer`` keyword is optional: ``"Bearer abc"`` and ``"abc"`` both
    yield ``"abc"``.
    """
    if authorization is None:
        return None
    value = authorization.strip()
    scheme, _, remainder = value.partition(" ")
    if scheme.lower() == "bearer":
        value = remainder.strip()
    return value or None
