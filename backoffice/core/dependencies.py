"""
FastAPI dependencies wrapping the authorization guard
"""

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError as ClaimsError
from sqlmodel import Session
from typing import Optional, Union
import structlog

from backoffice.core.auth import decode_access_token
from backoffice.core.database import get_session
from backoffice.core.errors import AccessError, Unauthorized
from backoffice.models.user import StructuralRole
from backoffice.schemas.token import TokenPayload
from backoffice.services.guard import AuthorizationGuard
from backoffice.services.permissions import Capability, PermissionSet
from backoffice.services.principal import Principal, principal_from_claims

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[Principal]:
    """Principal from the bearer token, or None when absent"""
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise Unauthorized("Could not validate credentials")

    try:
        claims = TokenPayload.model_validate(payload)
    except ClaimsError as e:
        raise Unauthorized("Malformed identity claims") from e

    principal = principal_from_claims(claims.model_dump())
    logger.debug(f"Principal authenticated: {principal.user_id}")
    return principal


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal)
) -> Principal:
    if principal is None:
        raise Unauthorized()
    return principal


def get_guard(session: Session = Depends(get_session)) -> AuthorizationGuard:
    return AuthorizationGuard(session)


def require_capability(flag: Union[Capability, str]):
    """Dependency factory to check a capability"""
    def check_capability(
        principal: Principal = Depends(get_current_principal),
        guard: AuthorizationGuard = Depends(get_guard),
    ) -> PermissionSet:
        return guard.require_capability(principal, flag)
    return check_capability


def require_structural_role(*roles: StructuralRole):
    """Dependency factory to restrict a route to structural roles"""
    def check_role(
        principal: Principal = Depends(get_current_principal),
        guard: AuthorizationGuard = Depends(get_guard),
    ) -> Principal:
        return guard.require_any_structural_role(principal, roles)
    return check_role


def require_page(slug: str):
    """Dependency factory to check page visibility"""
    def check_page(
        principal: Principal = Depends(get_current_principal),
        guard: AuthorizationGuard = Depends(get_guard),
    ) -> Principal:
        return guard.require_page(principal, slug)
    return check_page


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Map every access error kind to its status code"""
    app.add_exception_handler(AccessError, access_error_handler)
