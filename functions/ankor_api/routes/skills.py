"""
Skill endpoints. Coaches manage skills and media; every member can read.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from supabase import Client

from ankor_api.auth import ALL_ROLES, RequestContext, require_org_role
from ankor_api.config import get_settings
from ankor_api.dependencies import get_storage, get_supabase
from ankor_api.schemas import (
    CreateSkillRequest,
    SkillMediaCreateRequest,
    SkillMediaUploadRequest,
    UpdateSkillRequest,
    require_uuid,
)
from ankor_api.services import skills as service
from ankor_api.storage import StorageClient

router = APIRouter()

coach_from_body = require_org_role(["coach"], source="body")
coach_from_query = require_org_role(["coach"])
member_from_query = require_org_role(ALL_ROLES)


@router.post("", status_code=201)
def create_skill(
    payload: CreateSkillRequest,
    ctx: RequestContext = Depends(coach_from_body),
    client: Client = Depends(get_supabase),
):
    ctx.check_org(payload.org_id)
    return {"ok": True, "skill": service.create_skill(client, payload)}


@router.post("/media/upload-url", status_code=201)
def create_skill_media_upload_url(
    payload: SkillMediaUploadRequest,
    ctx: RequestContext = Depends(coach_from_body),
    client: Client = Depends(get_supabase),
    storage: StorageClient = Depends(get_storage),
):
    ctx.check_org(payload.org_id)
    result = service.create_skill_media_upload_url(
        client, storage, payload, get_settings().skills_media_bucket
    )
    return {"ok": True, **result}


@router.post("/media", status_code=201)
def create_skill_media(
    payload: SkillMediaCreateRequest,
    ctx: RequestContext = Depends(coach_from_body),
    client: Client = Depends(get_supabase),
):
    ctx.check_org(payload.org_id)
    media = service.create_skill_media(client, payload, get_settings().skills_media_bucket)
    return {"ok": True, "media": media}


@router.get("/list")
def list_skills(
    sport_id: Optional[str] = None,
    category: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    ctx: RequestContext = Depends(member_from_query),
    client: Client = Depends(get_supabase),
):
    items, count = service.list_skills(
        client,
        ctx.org_id,
        sport_id=sport_id,
        category=category,
        q=q,
        limit=limit,
        offset=offset,
    )
    return {"ok": True, "count": count, "items": items}


@router.get("/{skill_id}/media/playback")
def get_skill_media_playback(
    skill_id: str,
    expires_in: Optional[int] = None,
    ctx: RequestContext = Depends(member_from_query),
    client: Client = Depends(get_supabase),
    storage: StorageClient = Depends(get_storage),
):
    result = service.get_skill_media_playback_url(
        client,
        storage,
        require_uuid(skill_id, "skill_id"),
        ctx.org_id,
        get_settings().skills_media_bucket,
        expires_in=expires_in,
    )
    return {"ok": True, **result}


@router.get("/{skill_id}")
def get_skill(
    skill_id: str,
    ctx: RequestContext = Depends(member_from_query),
    client: Client = Depends(get_supabase),
):
    skill = service.get_skill_by_id(client, require_uuid(skill_id, "id"), ctx.org_id)
    return {"ok": True, "skill": skill}


@router.patch("/{skill_id}")
def update_skill(
    skill_id: str,
    payload: UpdateSkillRequest,
    ctx: RequestContext = Depends(coach_from_query),
    client: Client = Depends(get_supabase),
):
    skill = service.update_skill(client, require_uuid(skill_id, "id"), ctx.org_id, payload)
    return {"ok": True, "skill": skill}
