"""Operator authentication routes."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from .. import config
from ..dependencies import AuthContext, cookie_options, get_pilot, require_operator, require_operator_accounts
from ..service import SitePilot

router = APIRouter()


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


@router.post("/login", dependencies=[Depends(require_operator_accounts)])
def login(data: LoginRequest, response: Response, pilot: Annotated[SitePilot, Depends(get_pilot)]):
    token, account = pilot.operator_login(data.username, data.password)
    response.set_cookie(config.AUTH_COOKIE_NAME, token, **cookie_options(config.AUTH_COOKIE_SECURE))
    return {"success": True, "user": {"username": account.username}}


@router.post("/logout")
def logout(response: Response):
    """Drop the operator cookie. The token itself stays valid until it expires."""
    response.delete_cookie(config.AUTH_COOKIE_NAME, httponly=True, samesite="lax", secure=config.AUTH_COOKIE_SECURE)
    return {"success": True}


@router.get("/check")
def check(request: Request, pilot: Annotated[SitePilot, Depends(get_pilot)]):
    if not config.AUTH_ENABLED:
        return {"ok": True, "enabled": False}
    account = pilot.check_operator(request.cookies.get(config.AUTH_COOKIE_NAME))
    if account is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return {"ok": True, "enabled": True, "user": {"username": account.username}}


@router.get("/users")
def list_operators(ctx: Annotated[AuthContext, Depends(require_operator)], pilot: Annotated[SitePilot, Depends(get_pilot)]):
    if not config.AUTH_ENABLED:
        return {"users": []}
    return {"users": [{"username": u["username"]} for u in pilot.operators.list()]}


@router.post("/users", dependencies=[Depends(require_operator_accounts)])
def save_operator(
    data: LoginRequest,
    ctx: Annotated[AuthContext, Depends(require_operator)],
    pilot: Annotated[SitePilot, Depends(get_pilot)],
):
    pilot.operators.save(data.username, data.password)
    return {"success": True}


@router.delete("/users/{username}", dependencies=[Depends(require_operator_accounts)])
def delete_operator(
    username: str,
    ctx: Annotated[AuthContext, Depends(require_operator)],
    pilot: Annotated[SitePilot, Depends(get_pilot)],
):
    if not pilot.operators.delete(username):
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True}
