"""FastAPI dependencies for authentication."""
import hmac
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from . import config
from .service import SitePilot


class AuthContext:
    """Authentication context."""
    def __init__(
        self,
        authenticated: bool,
        username: str | None,
        method: str | None,
    ):
        self.authenticated = authenticated
        self.username = username
        self.method = method  # 'admin_token' | 'session' | 'dev' | None


ANONYMOUS = AuthContext(authenticated=False, username=None, method=None)


def get_pilot(request: Request) -> SitePilot:
    return request.app.state.pilot


def get_auth_context(
    request: Request,
    pilot: Annotated[SitePilot, Depends(get_pilot)],
    authorization: str | None = Header(default=None),
) -> AuthContext:
    """Get operator authentication context from request."""
    # Dev mode: bypass auth
    if config.DEV_MODE:
        return AuthContext(authenticated=True, username=None, method="dev")

    # Operator shared secret
    if authorization and config.ADMIN_TOKEN:
        token = authorization
        if token.startswith("Bearer "):
            token = token[7:]
        if token and hmac.compare_digest(token, config.ADMIN_TOKEN):
            return AuthContext(authenticated=True, username=None, method="admin_token")

    # Operator account session cookie
    if config.AUTH_ENABLED:
        account = pilot.check_operator(request.cookies.get(config.AUTH_COOKIE_NAME))
        if account:
            return AuthContext(authenticated=True, username=account.username, method="session")

    return ANONYMOUS


def require_operator(ctx: Annotated[AuthContext, Depends(get_auth_context)]) -> AuthContext:
    """Require operator authentication (shared secret or operator session)."""
    if not ctx.authenticated:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return ctx


def require_operator_accounts() -> None:
    """Operator account endpoints only exist when accounts are enabled."""
    if not config.AUTH_ENABLED:
        raise HTTPException(status_code=403, detail="Auth is disabled")


def cookie_options(secure: bool) -> dict:
    return {
        "httponly": True,
        "samesite": "lax",
        "secure": secure,
        "max_age": config.TOKEN_LIFETIME_DAYS * 24 * 60 * 60,
    }
