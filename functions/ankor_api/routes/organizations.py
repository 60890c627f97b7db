from __future__ import annotations

from fastapi import APIRouter, Depends
from supabase import Client

from ankor_api.auth import ALL_ROLES, RequestContext, require_org_role
from ankor_api.dependencies import get_supabase
from ankor_api.services import organizations as service

router = APIRouter()


@router.get("/{org_id}")
def get_organization(
    ctx: RequestContext = Depends(require_org_role(ALL_ROLES, source="path")),
    client: Client = Depends(get_supabase),
):
    return {"ok": True, "organization": service.get_organization(client, ctx.org_id)}
