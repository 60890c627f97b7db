"""
Join code management. Codes are random UUID strings generated server-side.
"""

from __future__ import annotations

import uuid

from supabase import Client

from ankor_api.db import fetch_one, fetch_page, fetch_rows, page_bounds
from ankor_api.errors import NotFoundError, UpstreamError
from ankor_api.schemas import (
    CreateJoinCodeRequest,
    JoinCodeDto,
    JoinCodeListFilter,
    UpdateJoinCodeRequest,
)

JOIN_CODE_FIELDS = (
    "code, org_id, team_id, max_uses, used_count, uses_count, expires_at, "
    "is_active, disabled, created_at, updated_at"
)

# Columns that reject NULL; an explicit null in a patch is ignored for them.
_NOT_NULL = ("max_uses", "expires_at", "is_active", "disabled")


def list_join_codes(client: Client, filters: JoinCodeListFilter) -> tuple[list[JoinCodeDto], int]:
    start, end = page_bounds(filters.limit, filters.offset)
    query = (
        client.table("join_codes")
        .select(JOIN_CODE_FIELDS, count="exact")
        .eq("org_id", filters.org_id)
    )
    if filters.team_id:
        query = query.eq("team_id", filters.team_id)
    rows, count = fetch_page(query.order("created_at", desc=True).range(start, end))
    return [JoinCodeDto.from_row(row) for row in rows], count


def get_join_code_by_code(client: Client, code: str, org_id: str) -> JoinCodeDto:
    row = fetch_one(
        client.table("join_codes")
        .select(JOIN_CODE_FIELDS)
        .eq("code", code)
        .eq("org_id", org_id)
    )
    if not row:
        raise NotFoundError("Join code not found")
    return JoinCodeDto.from_row(row)


def create_join_code(client: Client, payload: CreateJoinCodeRequest) -> JoinCodeDto:
    rows = fetch_rows(
        client.table("join_codes").insert(
            {
                "code": str(uuid.uuid4()),
                "org_id": payload.org_id,
                "team_id": payload.team_id,
                "max_uses": payload.max_uses,
                "expires_at": payload.expires_at,
                "is_active": payload.is_active,
                "disabled": payload.disabled,
            }
        )
    )
    if not rows:
        raise UpstreamError("Failed to create join code")
    return JoinCodeDto.from_row(rows[0])


def update_join_code(
    client: Client, code: str, org_id: str, payload: UpdateJoinCodeRequest
) -> JoinCodeDto:
    patch = {
        key: value
        for key, value in payload.patch().items()
        if value is not None or key not in _NOT_NULL
    }
    if not patch:
        return get_join_code_by_code(client, code, org_id)

    rows = fetch_rows(
        client.table("join_codes").update(patch).eq("code", code).eq("org_id", org_id)
    )
    if not rows:
        raise NotFoundError("Join code not found")
    return JoinCodeDto.from_row(rows[0])


def delete_join_code(client: Client, code: str, org_id: str) -> dict:
    rows = fetch_rows(
        client.table("join_codes").delete().eq("code", code).eq("org_id", org_id)
    )
    if not rows:
        raise NotFoundError("Join code not found")
    return {"code": rows[0]["code"]}
