from dataclasses import dataclass
from enum import Enum


class Capability(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


@dataclass(slots=True)
class Principal:
    username: str
    is_admin: bool = False


def authorize(principal: Principal | None, capability: Capability) -> None:
    """Raise ``PermissionError`` unless ``principal`` satisfies ``capability``.

    ``principal`` is ``None`` for anonymous callers.
    """
    if capability is Capability.PUBLIC:
        return
    if principal is None:
        raise PermissionError("authentication required")
    if capability is Capability.ADMIN and not principal.is_admin:
        raise PermissionError("admin privileges required")


def principal_from_claims(claims: dict) -> Principal | None:
    username = claims.get("username") or claims.get("sub")
    if not isinstance(username, str) or not username:
        return None
    return Principal(username=username, is_admin=claims.get("isAdmin") is True)
