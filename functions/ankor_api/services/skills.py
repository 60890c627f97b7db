"""
Skills and their media.

Media objects live in a storage bucket; the ``skill_video_map`` table links
a skill to its object path. Older deployments name some columns differently
(``storage_path`` for ``object_path``, ``sort_order`` for ``position``) or lack
optional ones, so inserts adapt to whatever the table reports as missing.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Optional
from urllib.parse import urlparse

from supabase import Client, PostgrestAPIError

from ankor_api.db import clamp, fetch_one, fetch_page, fetch_rows, page_bounds
from ankor_api.errors import BadRequestError, NotFoundError, UpstreamError
from ankor_api.schemas import (
    CreateSkillRequest,
    SkillMediaCreateRequest,
    SkillMediaUploadRequest,
    UpdateSkillRequest,
    is_uuid,
)
from ankor_api.storage import StorageClient

logger = logging.getLogger(__name__)

SKILL_FIELDS = (
    "id, org_id, sport_id, category, title, description, level, visibility, "
    "status, created_at, updated_at"
)

EXTENSION_BY_CONTENT_TYPE = {
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/webm": ".webm",
    "video/ogg": ".ogv",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}

BUCKET_ALIASES = ("skills_media", "skills-media", "skills_media_bucket")

OPTIONAL_MEDIA_COLUMNS = frozenset(
    {
        "bucket",
        "title",
        "description",
        "thumbnail_url",
        "position",
        "sort_order",
        "media_type",
        "url",
    }
)
MAX_INSERT_ATTEMPTS = 12
STORAGE_OBJECT_PREFIX = "/storage/v1/object/"

_MISSING_COLUMN_RE = re.compile(r'column "([^"]+)"', re.IGNORECASE)
_EXTENSION_RE = re.compile(r"\.([a-z0-9]{1,10})$", re.IGNORECASE)
_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9._-]")


def nullable_trimmed(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def sanitize_file_name(name: str) -> str:
    base = re.split(r"[\\/]", name.strip())[-1]
    safe = _UNSAFE_CHARS_RE.sub("_", base)
    return safe or "upload"


def infer_extension(file_name: str, content_type: str) -> str:
    match = _EXTENSION_RE.search(file_name)
    if match:
        return f".{match.group(1).lower()}"
    return EXTENSION_BY_CONTENT_TYPE.get(content_type.lower(), ".bin")


def build_skill_media_path(org_id: str, skill_id: str, file_name: str, content_type: str) -> str:
    extension = infer_extension(sanitize_file_name(file_name), content_type)
    return f"orgs/{org_id}/skills/{skill_id}/{uuid.uuid4()}{extension}"


def infer_media_type(content_type: str) -> str:
    normalized = content_type.lower()
    if normalized.startswith("video/"):
        return "video"
    if normalized.startswith("image/"):
        return "image"
    return "document"


def resolve_skills_bucket(value: Optional[str], configured: str) -> Optional[str]:
    """Map the bucket names clients send onto the configured bucket.

    Returns None for anything that is not an alias of the skills bucket.
    """
    trimmed = (value or "").strip()
    if not trimmed:
        return configured
    normalized = trimmed.lower()
    if normalized == configured.lower() or normalized in BUCKET_ALIASES:
        return configured
    return None


def parse_storage_object_url(value: str) -> Optional[tuple[str, str]]:
    """Split a Supabase storage object URL into ``(bucket, path)``.

    Handles ``/storage/v1/object/<bucket>/<path>`` as well as the ``public/``
    and ``sign/`` variants.
    """
    try:
        parsed = urlparse(value)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    if not parsed.path.startswith(STORAGE_OBJECT_PREFIX):
        return None

    parts = [part for part in parsed.path[len(STORAGE_OBJECT_PREFIX):].split("/") if part]
    offset = 1 if parts and parts[0] in ("public", "sign") else 0
    if len(parts) - offset < 2:
        return None
    return parts[offset], "/".join(parts[offset + 1:])


def map_skill_media_row(row: dict, fallback_bucket: Optional[str]) -> dict:
    bucket = row.get("bucket") if isinstance(row.get("bucket"), str) else fallback_bucket
    position = row.get("position")
    if not isinstance(position, int):
        position = row.get("sort_order") if isinstance(row.get("sort_order"), int) else None
    return {
        "id": row.get("id") or "",
        "skill_id": row.get("skill_id") or "",
        "bucket": bucket,
        "object_path": row.get("object_path") or row.get("storage_path") or "",
        "title": row.get("title"),
        "description": row.get("description"),
        "thumbnail_url": row.get("thumbnail_url"),
        "position": position,
        "media_type": row.get("media_type") or row.get("type"),
    }


# Skills


def list_skills(
    client: Client,
    org_id: str,
    sport_id: Optional[str] = None,
    category: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> tuple[list[dict], int]:
    if sport_id and not is_uuid(sport_id):
        raise BadRequestError("sport_id must be a UUID if provided")
    start, end = page_bounds(clamp(limit, 1, 200, 50), max(offset or 0, 0))

    query = (
        client.table("skills")
        .select(SKILL_FIELDS, count="exact")
        .eq("org_id", org_id)
    )
    if sport_id:
        query = query.eq("sport_id", sport_id)
    category = (category or "").strip()
    if category:
        query = query.ilike("category", category)
    q = (q or "").strip()
    if q:
        query = query.or_(f"title.ilike.%{q}%,category.ilike.%{q}%")
    return fetch_page(query.order("title").range(start, end))


def get_skill_by_id(client: Client, skill_id: str, org_id: str) -> dict:
    row = fetch_one(
        client.table("skills").select(SKILL_FIELDS).eq("id", skill_id).eq("org_id", org_id)
    )
    if not row:
        raise NotFoundError("Skill not found")
    return row


def create_skill(client: Client, payload: CreateSkillRequest) -> dict:
    rows = fetch_rows(
        client.table("skills").insert(
            {
                "org_id": payload.org_id,
                "sport_id": payload.sport_id,
                "category": payload.category,
                "title": payload.title,
                "description": nullable_trimmed(payload.description),
                "level": nullable_trimmed(payload.level),
                "visibility": nullable_trimmed(payload.visibility),
                "status": nullable_trimmed(payload.status),
            }
        )
    )
    if not rows:
        raise UpstreamError("Failed to create skill")
    return rows[0]


def update_skill(client: Client, skill_id: str, org_id: str, payload: UpdateSkillRequest) -> dict:
    patch: dict[str, Any] = {}
    for key, value in payload.patch().items():
        if key in ("category", "title"):
            if value is not None:
                patch[key] = value
        elif key == "sport_id":
            patch[key] = value
        else:
            patch[key] = nullable_trimmed(value)
    if not patch:
        raise BadRequestError("No updates provided")

    rows = fetch_rows(
        client.table("skills").update(patch).eq("id", skill_id).eq("org_id", org_id)
    )
    if not rows:
        raise NotFoundError("Skill not found")
    return rows[0]


def ensure_skill_in_org(client: Client, skill_id: str, org_id: str) -> None:
    row = fetch_one(
        client.table("skills").select("id").eq("id", skill_id).eq("org_id", org_id)
    )
    if not row:
        raise NotFoundError("Skill not found")


# Media


def create_skill_media_upload_url(
    client: Client,
    storage: StorageClient,
    payload: SkillMediaUploadRequest,
    bucket: str,
) -> dict:
    """Reserve an object path and return a signed upload URL for it, together
    with a draft media record the client can post back once uploaded."""
    ensure_skill_in_org(client, payload.skill_id, payload.org_id)

    path = build_skill_media_path(
        payload.org_id, payload.skill_id, payload.file_name, payload.content_type
    )
    signed = storage.create_signed_upload_url(bucket, path)
    public_url = storage.public_url(bucket, path)

    upload = {
        "bucket": bucket,
        "object_path": path,
        "signed_url": signed["signed_url"],
        "token": signed["token"],
        "public_url": public_url,
    }
    media = {
        "type": infer_media_type(payload.content_type),
        "url": public_url,
        "title": payload.title,
        "description": payload.description,
        "thumbnail_url": payload.thumbnail_url,
        "position": payload.position,
    }
    return {"upload": upload, "media": media}


def _missing_column(exc: PostgrestAPIError) -> Optional[str]:
    message = getattr(exc, "message", None) or str(exc)
    match = _MISSING_COLUMN_RE.search(message)
    return match.group(1) if match else None


def _insert_media_row(client: Client, values: dict, path: str) -> Optional[dict]:
    """Insert a ``skill_video_map`` row, renaming or dropping columns the
    table reports as missing until it is accepted."""
    path_key = "object_path"
    position_key = "position"
    removed: set[str] = set()

    def build() -> dict:
        row = {"skill_id": values["skill_id"], "bucket": values["bucket"], path_key: path}
        for key in ("title", "description", "thumbnail_url", "media_type", "url"):
            if key in values:
                row[key] = values[key]
        if "position" in values:
            row[position_key] = values["position"]
        for column in removed:
            row.pop(column, None)
        return row

    for _attempt in range(MAX_INSERT_ATTEMPTS):
        try:
            rows = fetch_rows(client.table("skill_video_map").insert(build()))
        except PostgrestAPIError as exc:
            missing = _missing_column(exc)
            if missing is None:
                raise
            logger.warning("skill_video_map insert rejected column %s, retrying", missing)
            if missing == path_key:
                path_key = "storage_path" if path_key == "object_path" else "object_path"
            elif missing == position_key:
                position_key = "sort_order" if position_key == "position" else "position"
            elif missing in OPTIONAL_MEDIA_COLUMNS:
                removed.add(missing)
            else:
                raise
            continue
        return rows[0] if rows else None

    raise UpstreamError("Failed to create skill media")


def create_skill_media(
    client: Client, payload: SkillMediaCreateRequest, configured_bucket: str
) -> Optional[dict]:
    ensure_skill_in_org(client, payload.skill_id, payload.org_id)

    path = (payload.object_path or "").strip() or (payload.storage_path or "").strip()
    bucket_name = payload.bucket
    if not path and payload.url:
        parsed = parse_storage_object_url(payload.url)
        if parsed:
            bucket_name = bucket_name or parsed[0]
            path = parsed[1]
    if not path:
        raise BadRequestError("object_path or url is required")

    bucket = resolve_skills_bucket(bucket_name, configured_bucket)
    if bucket is None:
        raise BadRequestError("Invalid bucket")

    values = {"skill_id": payload.skill_id, "bucket": bucket}
    provided = payload.model_fields_set
    for key in ("title", "description", "thumbnail_url", "position", "media_type", "url"):
        if key in provided:
            values[key] = getattr(payload, key)

    row = _insert_media_row(client, values, path)
    return map_skill_media_row(row, bucket) if row else None


def get_skill_media_playback_url(
    client: Client,
    storage: StorageClient,
    skill_id: str,
    org_id: str,
    configured_bucket: str,
    expires_in: Optional[int] = None,
) -> dict:
    expires_in = clamp(expires_in, 60, 86400, 3600)
    ensure_skill_in_org(client, skill_id, org_id)

    rows = fetch_rows(
        client.table("skill_video_map").select("*").eq("skill_id", skill_id).limit(1)
    )
    if not rows:
        raise NotFoundError("Skill media not found")
    row = rows[0]

    media = map_skill_media_row(row, configured_bucket)
    path = (media["object_path"] or "").strip()
    raw_url = row.get("url") if isinstance(row.get("url"), str) else ""
    bucket = media["bucket"] or configured_bucket

    if not path and raw_url:
        parsed = parse_storage_object_url(raw_url)
        if parsed:
            bucket, path = parsed

    if not path:
        if raw_url:
            return {"media": media, "play_url": raw_url, "expires_in": None}
        raise NotFoundError("Skill media not found")

    play_url = storage.create_signed_url(bucket, path, expires_in)
    return {"media": media, "play_url": play_url, "expires_in": expires_in}
