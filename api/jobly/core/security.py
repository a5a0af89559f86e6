import logging
from typing import Any

import jwt
from fastapi import Depends, Header, HTTPException, status

from jobly.core.auth import Capability, Principal, authorize, principal_from_claims
from jobly.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


async def get_optional_principal(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal | None:
    """Resolve the caller from a bearer JWT.

    A missing, malformed, or unverifiable token yields an anonymous caller
    (``None``); the capability check decides whether that is acceptable.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        return None

    token = authorization.split(" ", maxsplit=1)[1].strip()
    if not token:
        return None

    claims = decode_token(token, settings=settings)
    if claims is None:
        return None
    return principal_from_claims(claims)


def decode_token(token: str, *, settings: Settings) -> dict[str, Any] | None:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as exc:
        logger.debug("rejected bearer token: %s", exc)
        return None
    if not isinstance(claims, dict):
        return None
    return claims


def require_capability(capability: Capability):
    async def dependency(principal: Principal | None = Depends(get_optional_principal)) -> Principal | None:
        try:
            authorize(principal, capability)
        except PermissionError as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
        return principal

    return dependency
