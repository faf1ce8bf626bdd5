from typing import Annotated, Any

from fastapi import Depends, Header

from snf_admin.core.auth.jwt import bearer_token, decode_token
from snf_admin.core.auth.models import CurrentUser
from snf_admin.core.exceptions import AuthenticationError, AuthorizationError


def _as_int(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def user_from_claims(payload: dict[str, Any], token: str = "") -> CurrentUser:
    """Build CurrentUser from token claims; role may sit at top level or under 'user'."""
    user_claims = payload.get("user") if isinstance(payload.get("user"), dict) else {}
    role = payload.get("role") or user_claims.get("role") or ""
    return CurrentUser(
        id=_as_int(payload.get("userId") or payload.get("sub") or user_claims.get("id")),
        role=str(role),
        token=token,
        agency_id=_as_int(payload.get("agencyId") or user_claims.get("agencyId")),
        vendor_id=_as_int(payload.get("vendorId") or user_claims.get("vendorId")),
        depot_id=_as_int(payload.get("depotId") or user_claims.get("depotId")),
    )


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """
    Dependency to get the current caller from the JWT in the Authorization header.

    Usage:
        @router.get("/me")
        async def get_me(user: CurrentUser = Depends(get_current_user)):
            return user
    """
    if not authorization:
        raise AuthenticationError("Authorization header required")

    token = bearer_token(authorization)
    payload = decode_token(token)
    return user_from_claims(payload, token)


def require_access(*checks: str):
    """
    Dependency factory: caller must satisfy at least one role check
    ('admin', 'agency', 'vendor', 'depot').

    Usage:
        @router.get("/reports/x")
        async def x(user: CurrentUser = Depends(require_access("admin", "vendor"))):
            ...
    """

    async def role_checker(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if not any(getattr(current_user, f"is_{check}") for check in checks):
            raise AuthorizationError()
        return current_user

    return role_checker


# Convenience dependencies
AdminUser = Annotated[CurrentUser, Depends(require_access("admin"))]
