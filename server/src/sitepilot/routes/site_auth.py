"""Visitor accounts, per-site login and session checks."""
import html
import json
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from .. import config
from ..dependencies import AuthContext, cookie_options, get_pilot, require_operator
from ..errors import ValidationError
from ..service import SitePilot
from ..utils import is_valid_hostname, normalize_host

router = APIRouter()


class VisitorRequest(BaseModel):
    username: str = ""
    password: str = ""


class VisitorLoginRequest(BaseModel):
    host: str = ""
    username: str = ""
    password: str = ""


@router.get("/common-users")
def list_visitors(ctx: Annotated[AuthContext, Depends(require_operator)], pilot: Annotated[SitePilot, Depends(get_pilot)]):
    return {"users": pilot.visitors.list()}


@router.post("/common-users")
def save_visitor(
    data: VisitorRequest,
    ctx: Annotated[AuthContext, Depends(require_operator)],
    pilot: Annotated[SitePilot, Depends(get_pilot)],
):
    pilot.visitors.save(data.username, data.password)
    return {"success": True}


@router.delete("/common-users/{username}")
def delete_visitor(username: str, ctx: Annotated[AuthContext, Depends(require_operator)], pilot: Annotated[SitePilot, Depends(get_pilot)]):
    # Grants go with the account
    pilot.visitors.delete(username)
    return {"success": True}


@router.post("/login")
def visitor_login(data: VisitorLoginRequest, response: Response, pilot: Annotated[SitePilot, Depends(get_pilot)]):
    host = normalize_host(data.host)
    token = pilot.visitor_login(host, data.username, data.password)
    response.set_cookie(config.SITE_AUTH_COOKIE_NAME, token, **cookie_options(config.SITE_AUTH_COOKIE_SECURE))
    return {"success": True}


@router.post("/logout")
def visitor_logout(response: Response):
    response.delete_cookie(
        config.SITE_AUTH_COOKIE_NAME, httponly=True, samesite="lax", secure=config.SITE_AUTH_COOKIE_SECURE,
    )
    return {"success": True}


@router.get("/check")
def visitor_check(request: Request, pilot: Annotated[SitePilot, Depends(get_pilot)], host: str | None = None):
    """Session check used by the proxy in front of protected sites."""
    host = normalize_host(host or request.headers.get("host"))
    if not host or not is_valid_hostname(host):
        raise ValidationError("Invalid host")
    claim = pilot.check_visitor(request.cookies.get(config.SITE_AUTH_COOKIE_NAME), host)
    if claim is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return {"ok": True, "user": {"username": claim.username}}


login_router = APIRouter()

LOGIN_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>Login - {host_html}</title>
  <style>
    body {{ font-family: Arial, sans-serif; background: #f5f7fb; display: flex; align-items: center; justify-content: center; height: 100vh; margin: 0; }}
    .card {{ background: #fff; padding: 24px; border-radius: 12px; box-shadow: 0 10px 30px rgba(0,0,0,0.08); width: 320px; }}
    .title {{ margin: 0 0 8px; font-size: 20px; }}
    .sub {{ margin: 0 0 16px; color: #6b7280; font-size: 13px; }}
    input {{ width: 100%; padding: 10px 12px; margin-bottom: 12px; border: 1px solid #e5e7eb; border-radius: 8px; font-size: 14px; box-sizing: border-box; }}
    button {{ width: 100%; padding: 12px; border: none; border-radius: 8px; background: #1fc9e7; color: #fff; font-weight: 600; cursor: pointer; }}
    .error {{ color: #dc2626; font-size: 13px; margin-bottom: 8px; }}
  </style>
</head>
<body>
  <div class="card">
    <h1 class="title">Sign in</h1>
    <p class="sub">Host: {host_html}</p>
    <div id="error" class="error" style="display:none;"></div>
    <input id="username" placeholder="Username" />
    <input id="password" placeholder="Password" type="password" />
    <button id="loginBtn">Sign in</button>
  </div>
  <script>
    const host = {host_js};
    const next = {next_js};
    const err = document.getElementById('error');
    document.getElementById('loginBtn').onclick = async () => {{
      err.style.display = 'none';
      const username = document.getElementById('username').value.trim();
      const password = document.getElementById('password').value;
      if (!username || !password) {{ err.textContent = 'Enter a username and password'; err.style.display = 'block'; return; }}
      try {{
        const res = await fetch('/api/site-auth/login', {{
          method: 'POST',
          headers: {{ 'Content-Type': 'application/json' }},
          body: JSON.stringify({{ host, username, password }})
        }});
        if (!res.ok) {{ const data = await res.json(); throw new Error(data.detail || 'Login failed'); }}
        window.location.href = next;
      }} catch (e) {{
        err.textContent = e.message || 'Login failed';
        err.style.display = 'block';
      }}
    }};
  </script>
</body>
</html>
"""


def _safe_next(target: str | None) -> str:
    """Only same-site absolute paths are allowed as redirect targets."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return "/"
    return target


def _js_string(value: str) -> str:
    return json.dumps(value).replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


@login_router.get("/__login", response_class=HTMLResponse)
def login_page(request: Request, host: str | None = None, next: str | None = None):
    """Login form served on protected hosts."""
    host = normalize_host(host or request.headers.get("host"))
    if not is_valid_hostname(host):
        raise ValidationError("Invalid host")
    page = LOGIN_PAGE.format(
        host_html=html.escape(host),
        host_js=_js_string(host),
        next_js=_js_string(_safe_next(next)),
    )
    return HTMLResponse(page)
