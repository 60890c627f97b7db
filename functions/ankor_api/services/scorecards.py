"""
Scorecard templates: a template owns ordered categories, each category owns
ordered subskills.

Template creation is a single ``create_scorecard_template_tx`` call. Patching
an existing template runs several sequential statements; every check happens
before the first write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from supabase import Client

from ankor_api.db import clamp, fetch_one, fetch_page, fetch_rows, page_bounds
from ankor_api.errors import BadRequestError, NotFoundError, UpstreamError
from ankor_api.schemas import (
    CreateScorecardTemplateRequest,
    ScorecardSubskillInput,
    UpdateScorecardTemplateRequest,
)

logger = logging.getLogger(__name__)

TEMPLATE_FIELDS = (
    "id, org_id, sport_id, name, description, is_active, created_by, created_at, updated_at"
)
CATEGORY_FIELDS = "id, template_id, name, description, position, created_at"
SUBSKILL_FIELDS = (
    "id, category_id, skill_id, name, description, position, rating_min, rating_max, created_at"
)

TEMPLATE_DETAIL_SELECT = f"""
    {TEMPLATE_FIELDS},
    scorecard_categories (
      {CATEGORY_FIELDS},
      scorecard_subskills (
        {SUBSKILL_FIELDS}
      )
    )
"""


@dataclass
class ScorecardUpdateSummary:
    added_category_ids: list[str] = field(default_factory=list)
    removed_category_ids: list[str] = field(default_factory=list)
    added_subskill_ids: list[str] = field(default_factory=list)
    removed_subskill_ids: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "added_category_ids": self.added_category_ids,
            "removed_category_ids": self.removed_category_ids,
            "added_subskill_ids": self.added_subskill_ids,
            "removed_subskill_ids": self.removed_subskill_ids,
        }


def _position(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _template_id_from_rpc(data: Any) -> Optional[str]:
    if isinstance(data, str):
        return data or None
    if isinstance(data, list) and data:
        data = data[0]
    if isinstance(data, dict):
        return data.get("template_id") or data.get("id")
    return None


def create_scorecard_template(
    client: Client, payload: CreateScorecardTemplateRequest, created_by: str
) -> tuple[Optional[str], Any]:
    """Create the template with all of its categories and subskills in one
    transaction. Returns ``(template_id, rpc_result)``."""
    response = client.rpc(
        "create_scorecard_template_tx",
        {
            "p_template": payload.model_dump(mode="json"),
            "p_created_by": created_by,
        },
    ).execute()
    return _template_id_from_rpc(response.data), response.data


def list_scorecard_templates(
    client: Client,
    org_id: str,
    sport_id: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> tuple[list[dict], int]:
    start, end = page_bounds(clamp(limit, 1, 200, 10), max(offset or 0, 0))
    query = (
        client.table("scorecard_templates")
        .select(TEMPLATE_FIELDS, count="exact")
        .eq("org_id", org_id)
    )
    if sport_id:
        query = query.eq("sport_id", sport_id)
    q = (q or "").strip()
    if q:
        query = query.or_(f"name.ilike.%{q}%,description.ilike.%{q}%")
    return fetch_page(query.order("updated_at", desc=True).range(start, end))


def get_scorecard_template_by_id(client: Client, org_id: str, template_id: str) -> dict:
    row = fetch_one(
        client.table("scorecard_templates")
        .select(TEMPLATE_DETAIL_SELECT)
        .eq("id", template_id)
        .eq("org_id", org_id)
    )
    if not row:
        raise NotFoundError("Scorecard template not found")

    categories = row.get("scorecard_categories")
    categories = sorted(
        categories if isinstance(categories, list) else [],
        key=lambda category: _position(category.get("position")),
    )
    for category in categories:
        subskills = category.get("scorecard_subskills")
        category["scorecard_subskills"] = sorted(
            subskills if isinstance(subskills, list) else [],
            key=lambda subskill: _position(subskill.get("position")),
        )
    row["scorecard_categories"] = categories
    return row


def _subskill_row(category_id: str, subskill: ScorecardSubskillInput, position: int) -> dict:
    row = {
        "category_id": category_id,
        "name": subskill.name,
        "description": subskill.description,
        "position": position,
        "skill_id": subskill.skill_id,
    }
    for key in ("rating_min", "rating_max", "priority"):
        value = getattr(subskill, key)
        if value is not None:
            row[key] = value
    return row


def _validate_changes(
    payload: UpdateScorecardTemplateRequest, existing_category_ids: set[str]
) -> None:
    if any(cid not in existing_category_ids for cid in payload.remove_category_ids):
        raise BadRequestError("One or more category ids do not belong to this template.")
    if any(s.category_id not in existing_category_ids for s in payload.add_subskills):
        raise BadRequestError("One or more subskills refer to an invalid category.")
    removed = set(payload.remove_category_ids)
    if any(s.category_id in removed for s in payload.add_subskills):
        raise BadRequestError("Cannot add subskills to a category being removed.")


def update_scorecard_template(
    client: Client, template_id: str, payload: UpdateScorecardTemplateRequest
) -> ScorecardUpdateSummary:
    """
    Apply add/remove operations to a template's categories and subskills.

    Order of writes: removed subskills, removed categories, added categories
    (each with its subskills), then subskills added to existing categories.
    New categories without a position are appended after the current maximum;
    new subskills without a position are appended within their category.
    """
    template = fetch_one(
        client.table("scorecard_templates")
        .select("id")
        .eq("id", template_id)
        .eq("org_id", payload.org_id)
    )
    if not template:
        raise NotFoundError("Scorecard template not found")

    categories = fetch_rows(
        client.table("scorecard_categories").select("id, position").eq("template_id", template_id)
    )
    existing_category_ids = {category["id"] for category in categories}
    max_category_position = max(
        [0] + [_position(category.get("position")) for category in categories]
    )

    _validate_changes(payload, existing_category_ids)

    if payload.remove_subskill_ids:
        subskills = fetch_rows(
            client.table("scorecard_subskills")
            .select("id, category_id")
            .in_("id", payload.remove_subskill_ids)
        )
        if len(subskills) != len(payload.remove_subskill_ids):
            raise BadRequestError("One or more subskill ids are invalid.")
        if any(s.get("category_id") not in existing_category_ids for s in subskills):
            raise BadRequestError("One or more subskills do not belong to this template.")
        client.table("scorecard_subskills").delete().in_(
            "id", payload.remove_subskill_ids
        ).execute()

    if payload.remove_category_ids:
        client.table("scorecard_categories").delete().eq("template_id", template_id).in_(
            "id", payload.remove_category_ids
        ).execute()

    summary = ScorecardUpdateSummary(
        removed_category_ids=list(payload.remove_category_ids),
        removed_subskill_ids=list(payload.remove_subskill_ids),
    )

    category_cursor = max_category_position
    for category in payload.add_categories:
        if category.position is not None:
            position = category.position
        else:
            category_cursor += 1
            position = category_cursor

        inserted = fetch_rows(
            client.table("scorecard_categories").insert(
                {
                    "template_id": template_id,
                    "name": category.name,
                    "description": category.description,
                    "position": position,
                }
            )
        )
        category_id = inserted[0].get("id") if inserted else None
        if not category_id:
            raise UpstreamError("Failed to create scorecard category.")
        summary.added_category_ids.append(category_id)

        subskill_cursor = 0
        rows = []
        for subskill in category.subskills:
            if subskill.position is not None:
                subskill_position = subskill.position
            else:
                subskill_cursor += 1
                subskill_position = subskill_cursor
            rows.append(_subskill_row(category_id, subskill, subskill_position))

        inserted_subskills = fetch_rows(client.table("scorecard_subskills").insert(rows))
        summary.added_subskill_ids.extend(
            row["id"] for row in inserted_subskills if row.get("id")
        )

    if payload.add_subskills:
        target_ids = list(dict.fromkeys(s.category_id for s in payload.add_subskills))
        existing = fetch_rows(
            client.table("scorecard_subskills")
            .select("category_id, position")
            .in_("category_id", target_ids)
        )
        max_positions: dict[str, int] = {}
        for row in existing:
            position = _position(row.get("position"))
            if position > max_positions.get(row["category_id"], 0):
                max_positions[row["category_id"]] = position

        rows = []
        for subskill in payload.add_subskills:
            if subskill.position is not None:
                position = subskill.position
            else:
                position = max_positions.get(subskill.category_id, 0) + 1
                max_positions[subskill.category_id] = position
            rows.append(_subskill_row(subskill.category_id, subskill, position))

        inserted_subskills = fetch_rows(client.table("scorecard_subskills").insert(rows))
        summary.added_subskill_ids.extend(
            row["id"] for row in inserted_subskills if row.get("id")
        )

    logger.info(
        "Updated scorecard template %s: +%d/-%d categories, +%d/-%d subskills",
        template_id,
        len(summary.added_category_ids),
        len(summary.removed_category_ids),
        len(summary.added_subskill_ids),
        len(summary.removed_subskill_ids),
    )
    return summary


def list_scorecard_categories_by_template(
    client: Client,
    org_id: str,
    scorecard_template_id: str,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> tuple[list[dict], int]:
    template = fetch_one(
        client.table("scorecard_templates")
        .select("id")
        .eq("id", scorecard_template_id)
        .eq("org_id", org_id)
    )
    if not template:
        return [], 0

    start, end = page_bounds(clamp(limit, 1, 200, 50), max(offset or 0, 0))
    return fetch_page(
        client.table("scorecard_categories")
        .select(CATEGORY_FIELDS, count="exact")
        .eq("template_id", scorecard_template_id)
        .order("position")
        .range(start, end)
    )


def list_scorecard_subskills_by_category(
    client: Client,
    org_id: str,
    category_id: str,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> tuple[list[dict], int]:
    category = fetch_one(
        client.table("scorecard_categories").select("id, template_id").eq("id", category_id)
    )
    if not category:
        return [], 0
    template = fetch_one(
        client.table("scorecard_templates")
        .select("id")
        .eq("id", category.get("template_id"))
        .eq("org_id", org_id)
    )
    if not template:
        return [], 0

    start, end = page_bounds(clamp(limit, 1, 200, 50), max(offset or 0, 0))
    return fetch_page(
        client.table("scorecard_subskills")
        .select(SUBSKILL_FIELDS, count="exact")
        .eq("category_id", category_id)
        .order("position")
        .range(start, end)
    )
