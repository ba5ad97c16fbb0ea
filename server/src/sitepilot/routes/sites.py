from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel

from .. import config
from ..dependencies import AuthContext, get_pilot, require_operator
from ..errors import PayloadTooLarge, ValidationError
from ..models import SiteType
from ..service import SitePilot
from ..utils import is_valid_hostname, site_url

router = APIRouter()

ZIP_CONTENT_TYPES = {"application/zip", "application/x-zip-compressed"}


class GrantsRequest(BaseModel):
    usernames: Any = []


def _is_archive(file: UploadFile) -> bool:
    return file.content_type in ZIP_CONTENT_TYPES or (file.filename or "").lower().endswith(".zip")


def _read_upload(file: UploadFile) -> bytes:
    content = file.file.read(config.MAX_UPLOAD_SIZE + 1)
    if len(content) > config.MAX_UPLOAD_SIZE:
        raise PayloadTooLarge("Upload exceeds maximum size")
    return content


def _check_host(host: str) -> None:
    if not is_valid_hostname(host):
        raise ValidationError("Invalid hostname")


@router.post("/deploy")
def deploy(
    ctx: Annotated[AuthContext, Depends(require_operator)],
    pilot: Annotated[SitePilot, Depends(get_pilot)],
    host: str | None = Form(default=None),
    code: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
):
    try:
        if not host or not is_valid_hostname(host):
            raise ValidationError("Invalid hostname")
        if file is None and code is None:
            raise ValidationError("No file or code provided")
        if file is not None and code is not None:
            raise ValidationError("Provide either a file or code, not both")

        if code is not None:
            document = code.encode("utf-8")
            if len(document) > config.MAX_UPLOAD_SIZE:
                raise PayloadTooLarge("Upload exceeds maximum size")
            site = pilot.publish(host, document=document, kind=SiteType.CODE)
        elif _is_archive(file):
            site = pilot.publish(host, archive=_read_upload(file), kind=SiteType.UPLOAD)
        else:
            site = pilot.publish(host, document=_read_upload(file), kind=SiteType.UPLOAD)
    finally:
        if file is not None:
            file.file.close()

    return {"success": True, "host": site.host, "url": site_url(site.host), "type": site.type.value}


@router.get("/sites")
def list_sites(ctx: Annotated[AuthContext, Depends(require_operator)], pilot: Annotated[SitePilot, Depends(get_pilot)]):
    return [site.to_dict() for site in pilot.registry.list()]


@router.delete("/sites/{host}")
def delete_site(host: str, ctx: Annotated[AuthContext, Depends(require_operator)], pilot: Annotated[SitePilot, Depends(get_pilot)]):
    pilot.unpublish(host)
    return {"success": True}


@router.get("/sites/{host}/health")
def site_health(host: str, ctx: Annotated[AuthContext, Depends(require_operator)], pilot: Annotated[SitePilot, Depends(get_pilot)]):
    health = pilot.registry.health_of(host)
    return {"status": health.status.value, "lastCheck": health.last_check}


@router.get("/sites/{host}/auth/users")
def site_visitors(host: str, ctx: Annotated[AuthContext, Depends(require_operator)], pilot: Annotated[SitePilot, Depends(get_pilot)]):
    return {"users": [{"username": u} for u in pilot.grants.granted_visitors(host)]}


@router.post("/sites/{host}/auth/grants")
def replace_site_grants(
    host: str,
    data: GrantsRequest,
    ctx: Annotated[AuthContext, Depends(require_operator)],
    pilot: Annotated[SitePilot, Depends(get_pilot)],
):
    _check_host(host)
    if not isinstance(data.usernames, list):
        raise ValidationError("usernames must be an array")
    update = pilot.grants.replace_grants(host, data.usernames)
    return {"success": True, "count": update.count, "ignored": update.ignored}
