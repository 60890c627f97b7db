"""
Athlete roster endpoints. Coaches only.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from supabase import Client

from ankor_api.auth import RequestContext, require_org_role
from ankor_api.dependencies import get_supabase
from ankor_api.schemas import (
    AthleteListFilter,
    CreateAthleteRequest,
    UpdateAthleteRequest,
    require_uuid,
)
from ankor_api.services import athletes as service

router = APIRouter()

coach_from_query = require_org_role(["coach"])
coach_from_body = require_org_role(["coach"], source="body")


@router.get("/list")
def list_athletes(
    filters: Annotated[AthleteListFilter, Query()],
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    items, count = service.list_athletes(client, filters)
    return {"ok": True, "count": count, "items": items}


@router.post("", status_code=201)
def create_athlete(
    payload: CreateAthleteRequest,
    ctx: RequestContext = Depends(coach_from_body),
    client: Client = Depends(get_supabase),
):
    ctx.check_org(payload.org_id)
    return {"ok": True, "athlete": service.create_athlete(client, payload)}


@router.get("/{athlete_id}")
def get_athlete(
    athlete_id: str,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    athlete = service.get_athlete_by_id(client, require_uuid(athlete_id, "id"), ctx.org_id)
    return {"ok": True, "athlete": athlete}


@router.patch("/{athlete_id}")
def update_athlete(
    athlete_id: str,
    payload: UpdateAthleteRequest,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    athlete = service.update_athlete(
        client, require_uuid(athlete_id, "id"), ctx.org_id, payload
    )
    return {"ok": True, "athlete": athlete}
