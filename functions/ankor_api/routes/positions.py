from __future__ import annotations

from fastapi import APIRouter, Depends
from supabase import Client

from ankor_api.auth import ALL_ROLES, RequestContext, require_org_role
from ankor_api.dependencies import get_supabase
from ankor_api.services import positions as service

router = APIRouter()


@router.get("/list")
def list_positions(
    ctx: RequestContext = Depends(require_org_role(ALL_ROLES)),
    client: Client = Depends(get_supabase),
):
    positions = service.list_positions_by_org_id(client, ctx.org_id)
    return {"ok": True, "count": len(positions), "data": positions}
