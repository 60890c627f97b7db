"""
Join code endpoints. Coaches only.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from supabase import Client

from ankor_api.auth import RequestContext, require_org_role
from ankor_api.dependencies import get_supabase
from ankor_api.errors import BadRequestError
from ankor_api.schemas import CreateJoinCodeRequest, JoinCodeListFilter, UpdateJoinCodeRequest
from ankor_api.services import join_codes as service

router = APIRouter()

coach_from_query = require_org_role(["coach"])
coach_from_body = require_org_role(["coach"], source="body")


def _code(value: str) -> str:
    value = value.strip()
    if not value:
        raise BadRequestError("code is required")
    return value


@router.get("/list")
def list_join_codes(
    filters: Annotated[JoinCodeListFilter, Query()],
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    items, count = service.list_join_codes(client, filters)
    return {"ok": True, "count": count, "items": items}


@router.post("", status_code=201)
def create_join_code(
    payload: CreateJoinCodeRequest,
    ctx: RequestContext = Depends(coach_from_body),
    client: Client = Depends(get_supabase),
):
    ctx.check_org(payload.org_id)
    return {"ok": True, "join_code": service.create_join_code(client, payload)}


@router.get("/{code}")
def get_join_code(
    code: str,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    join_code = service.get_join_code_by_code(client, _code(code), ctx.org_id)
    return {"ok": True, "join_code": join_code}


@router.patch("/{code}")
def update_join_code(
    code: str,
    payload: UpdateJoinCodeRequest,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    join_code = service.update_join_code(client, _code(code), ctx.org_id, payload)
    return {"ok": True, "join_code": join_code}


@router.delete("/{code}")
def delete_join_code(
    code: str,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    return {"ok": True, "deleted": service.delete_join_code(client, _code(code), ctx.org_id)}
