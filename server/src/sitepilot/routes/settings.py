from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from .. import config
from ..dependencies import AuthContext, get_pilot, require_operator
from ..service import SitePilot

router = APIRouter()


class SettingsRequest(BaseModel):
    allowedDomains: Any = None


@router.get("/config")
def public_config(pilot: Annotated[SitePilot, Depends(get_pilot)]):
    """Settings the dashboard needs before login."""
    domains = pilot.settings.get_allowed_domains()
    return {
        "baseDomain": domains[0] if domains else None,
        "allowedDomains": domains,
        "authEnabled": config.AUTH_ENABLED,
    }


@router.get("/settings")
def get_settings(ctx: Annotated[AuthContext, Depends(require_operator)], pilot: Annotated[SitePilot, Depends(get_pilot)]):
    return {"allowedDomains": pilot.settings.get_allowed_domains()}


@router.post("/settings")
def update_settings(
    data: SettingsRequest,
    ctx: Annotated[AuthContext, Depends(require_operator)],
    pilot: Annotated[SitePilot, Depends(get_pilot)],
):
    return {"allowedDomains": pilot.settings.set_allowed_domains(data.allowedDomains)}
