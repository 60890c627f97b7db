"""
Team endpoints. Coaches only.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from supabase import Client

from ankor_api.auth import RequestContext, require_org_role
from ankor_api.dependencies import get_supabase
from ankor_api.errors import BadRequestError
from ankor_api.schemas import CreateTeamRequest, UpdateTeamRequest, is_uuid, require_uuid
from ankor_api.services import teams as service

router = APIRouter()

coach_from_query = require_org_role(["coach"])
coach_from_body = require_org_role(["coach"], source="body")


@router.get("/list-with-athletes")
def list_teams_with_athletes(
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    teams = service.list_teams_with_athletes(client, ctx.org_id)
    return {"ok": True, "count": len(teams), "data": teams}


@router.get("/list")
def list_teams(
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    return {"ok": True, "data": service.get_teams_by_org_id(client, ctx.org_id)}


@router.get("/athletes-by-team")
def list_athletes_by_team(
    team_id: Optional[str] = None,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    team_id = (team_id or "").strip()
    if not team_id:
        raise BadRequestError("Query parameter 'team_id' is required.")
    if not is_uuid(team_id):
        raise BadRequestError("team_id must be a valid UUID")
    athletes = service.get_athletes_by_team(client, team_id, ctx.org_id)
    return {"ok": True, "count": len(athletes), "data": athletes}


@router.post("", status_code=201)
def create_team(
    payload: CreateTeamRequest,
    ctx: RequestContext = Depends(coach_from_body),
    client: Client = Depends(get_supabase),
):
    ctx.check_org(payload.org_id)
    return {"ok": True, "team": service.create_team(client, payload)}


@router.get("/{team_id}")
def get_team(
    team_id: str,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    team_id = require_uuid(team_id, "id")
    return {"ok": True, "team": service.get_team_by_id(client, team_id, ctx.org_id)}


@router.patch("/{team_id}")
def update_team(
    team_id: str,
    payload: UpdateTeamRequest,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    team_id = require_uuid(team_id, "id")
    return {"ok": True, "team": service.update_team(client, team_id, ctx.org_id, payload)}


@router.delete("/{team_id}")
def delete_team(
    team_id: str,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    team_id = require_uuid(team_id, "id")
    return {"ok": True, "deleted": service.delete_team(client, team_id, ctx.org_id)}
