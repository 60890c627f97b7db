"""
Scorecard template endpoints. Coaches only.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from supabase import Client

from ankor_api.auth import RequestContext, require_org_role
from ankor_api.dependencies import get_supabase
from ankor_api.errors import BadRequestError
from ankor_api.schemas import (
    CreateScorecardTemplateRequest,
    UpdateScorecardTemplateRequest,
    is_uuid,
    require_uuid,
)
from ankor_api.services import scorecards as service

router = APIRouter()

coach_from_query = require_org_role(["coach"])
coach_from_body = require_org_role(["coach"], source="body")


@router.post("", status_code=201)
def create_scorecard_template(
    payload: CreateScorecardTemplateRequest,
    ctx: RequestContext = Depends(coach_from_body),
    client: Client = Depends(get_supabase),
):
    ctx.check_org(payload.org_id)
    template_id, data = service.create_scorecard_template(client, payload, ctx.user_id)
    return {"ok": True, "template_id": template_id, "data": data}


@router.get("/list")
def list_scorecard_templates(
    sport_id: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    if sport_id and not is_uuid(sport_id):
        raise BadRequestError("sport_id must be a UUID if provided")
    items, count = service.list_scorecard_templates(
        client, ctx.org_id, sport_id=sport_id, q=q, limit=limit, offset=offset
    )
    return {"ok": True, "count": count, "items": items}


@router.get("/categories")
def list_scorecard_categories(
    scorecard_template_id: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    items, count = service.list_scorecard_categories_by_template(
        client,
        ctx.org_id,
        require_uuid(scorecard_template_id, "scorecard_template_id"),
        limit=limit,
        offset=offset,
    )
    return {"ok": True, "count": count, "items": items}


@router.get("/subskills")
def list_scorecard_subskills(
    category_id: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    items, count = service.list_scorecard_subskills_by_category(
        client,
        ctx.org_id,
        require_uuid(category_id, "category_id"),
        limit=limit,
        offset=offset,
    )
    return {"ok": True, "count": count, "items": items}


@router.get("/{template_id}")
def get_scorecard_template(
    template_id: str,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    template = service.get_scorecard_template_by_id(
        client, ctx.org_id, require_uuid(template_id, "id")
    )
    return {"ok": True, "template": template}


@router.patch("/{template_id}")
def update_scorecard_template(
    template_id: str,
    payload: UpdateScorecardTemplateRequest,
    ctx: RequestContext = Depends(coach_from_body),
    client: Client = Depends(get_supabase),
):
    ctx.check_org(payload.org_id)
    summary = service.update_scorecard_template(
        client, require_uuid(template_id, "id"), payload
    )
    return {"ok": True, **summary.as_dict()}
