"""
Pydantic request schemas (DTOs) for the API.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    EmailStr,
    Field,
    HttpUrl,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from ankor_api.errors import BadRequestError

UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_HTTP_URL = TypeAdapter(HttpUrl)
_DATETIME = TypeAdapter(datetime)


def is_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(UUID_RE.match(value))


def _check_uuid(value: str) -> str:
    if not is_uuid(value):
        raise ValueError("Invalid UUID")
    return value


def _check_iso_date(value: str) -> str:
    try:
        _DATETIME.validate_python(value)
    except ValidationError:
        raise ValueError("expires_at must be a valid ISO date string") from None
    return value


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        raise ValueError("thumbnail_url must be a valid URL") from None
    return value


Uuid = Annotated[str, StringConstraints(strip_whitespace=True), AfterValidator(_check_uuid)]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
IsoDate = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1), AfterValidator(_check_iso_date)
]
ThumbnailUrl = Annotated[Optional[str], AfterValidator(_check_url)]

Text50 = Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]
Text100 = Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)]
Text200 = Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]
Text4000 = Annotated[str, StringConstraints(strip_whitespace=True, max_length=4000)]
Required120 = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]
Required200 = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Required255 = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
PathText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2048)]


class PatchModel(BaseModel):
    """Base for partial updates: at least one field must be present."""

    @model_validator(mode="after")
    def _require_updates(self):
        if not self.model_fields_set:
            raise ValueError("No updates provided")
        return self

    def patch(self) -> dict:
        return self.model_dump(exclude_unset=True)


# Teams


class CreateTeamRequest(BaseModel):
    org_id: Uuid
    sport_id: Optional[Uuid] = None
    name: Name
    is_active: bool = True


class UpdateTeamRequest(PatchModel):
    sport_id: Optional[Uuid] = None
    name: Optional[Name] = None
    is_active: Optional[bool] = None


class TeamDto(BaseModel):
    id: str
    org_id: str
    sport_id: Optional[str] = None
    name: str
    is_active: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "TeamDto":
        return cls(
            id=row["id"],
            org_id=row["org_id"],
            sport_id=row.get("sport_id"),
            name=row["name"],
            is_active=bool(row.get("is_active") or False),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


# Join codes


class JoinCodeListFilter(BaseModel):
    org_id: Uuid
    team_id: Optional[Uuid] = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


class CreateJoinCodeRequest(BaseModel):
    org_id: Uuid
    team_id: Optional[Uuid] = None
    max_uses: int = Field(default=1, ge=1)
    expires_at: IsoDate
    is_active: bool = True
    disabled: bool = False

    @model_validator(mode="before")
    @classmethod
    def _reject_client_code(cls, data: Any) -> Any:
        if isinstance(data, dict) and "code" in data:
            raise ValueError(
                "Join code is generated automatically; do not provide 'code'."
            )
        return data


class UpdateJoinCodeRequest(PatchModel):
    team_id: Optional[Uuid] = None
    max_uses: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[IsoDate] = None
    is_active: Optional[bool] = None
    disabled: Optional[bool] = None


class JoinCodeDto(BaseModel):
    code: str
    org_id: str
    team_id: Optional[str] = None
    max_uses: int = 1
    used_count: int = 0
    uses_count: int = 0
    expires_at: Optional[str] = None
    is_active: bool = True
    disabled: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "JoinCodeDto":
        def _or(key: str, default: Any) -> Any:
            value = row.get(key)
            return default if value is None else value

        return cls(
            code=row["code"],
            org_id=row["org_id"],
            team_id=row.get("team_id"),
            max_uses=_or("max_uses", 1),
            used_count=_or("used_count", 0),
            uses_count=_or("uses_count", 0),
            expires_at=row.get("expires_at"),
            is_active=_or("is_active", True),
            disabled=_or("disabled", False),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


# Skills


class CreateSkillRequest(BaseModel):
    org_id: Uuid
    sport_id: Optional[Uuid] = None
    category: Required200
    title: Required200
    description: Optional[Text4000] = None
    level: Optional[Text50] = None
    visibility: Optional[Text50] = None
    status: Optional[Text50] = None


class UpdateSkillRequest(PatchModel):
    sport_id: Optional[Uuid] = None
    category: Optional[Required200] = None
    title: Optional[Required200] = None
    description: Optional[Text4000] = None
    level: Optional[Text50] = None
    visibility: Optional[Text50] = None
    status: Optional[Text50] = None


class SkillMediaUploadRequest(BaseModel):
    org_id: Uuid
    skill_id: Uuid
    file_name: Required255
    content_type: Required120
    title: Optional[Text200] = None
    description: Optional[Text4000] = None
    thumbnail_url: ThumbnailUrl = None
    position: Optional[int] = Field(default=None, ge=0)


class SkillMediaCreateRequest(BaseModel):
    org_id: Uuid
    skill_id: Uuid
    bucket: Optional[Text200] = None
    object_path: Optional[PathText] = None
    storage_path: Optional[PathText] = None
    url: Optional[PathText] = None
    title: Optional[Text200] = None
    description: Optional[Text4000] = None
    thumbnail_url: ThumbnailUrl = None
    position: Optional[int] = Field(default=None, ge=0)
    media_type: Optional[Text50] = None


# Athletes


class CreateAthleteRequest(BaseModel):
    org_id: Uuid
    team_id: Optional[Uuid] = None
    first_name: Name
    last_name: Name
    full_name: Optional[Text200] = None
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[Text50] = None
    cell_number: Optional[Text50] = None
    gender: Optional[Text50] = None
    graduation_year: Optional[int] = Field(default=None, ge=1900, le=2200)
    positions: Optional[list[Uuid]] = None
    parent_full_name: Optional[Text200] = None
    parent_email: Optional[EmailStr] = None
    parent_mobile_phone: Optional[Text50] = None
    relationship: Optional[Text50] = None


class UpdateAthleteRequest(PatchModel):
    user_id: Optional[Uuid] = None
    first_name: Optional[Name] = None
    last_name: Optional[Name] = None
    full_name: Optional[Text200] = None
    phone: Optional[Text50] = None
    cell_number: Optional[Text50] = None
    graduation_year: Optional[int] = Field(default=None, ge=1900, le=2200)


class AthleteListFilter(BaseModel):
    org_id: Uuid
    name: Optional[str] = None
    email: Optional[str] = None
    team_id: Optional[Uuid] = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


# Scorecards


class ScorecardSubskillInput(BaseModel):
    name: Name
    description: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)
    skill_id: Uuid
    rating_min: Optional[int] = None
    rating_max: Optional[int] = None
    priority: Optional[int] = None

    @model_validator(mode="after")
    def _check_rating_bounds(self):
        if (
            self.rating_min is not None
            and self.rating_max is not None
            and self.rating_min > self.rating_max
        ):
            raise ValueError("rating_min must be less than or equal to rating_max")
        return self


class ScorecardSubskillAddInput(ScorecardSubskillInput):
    category_id: Uuid


class ScorecardCategoryInput(BaseModel):
    name: Name
    description: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)
    subskills: list[ScorecardSubskillInput] = Field(..., min_length=1)


class CreateScorecardTemplateRequest(BaseModel):
    org_id: Uuid
    sport_id: Optional[Uuid] = None
    name: Name
    description: Optional[str] = None
    is_active: bool = True
    categories: list[ScorecardCategoryInput] = Field(..., min_length=1)


class UpdateScorecardTemplateRequest(BaseModel):
    org_id: Uuid
    add_categories: list[ScorecardCategoryInput] = Field(default_factory=list)
    remove_category_ids: list[Uuid] = Field(default_factory=list)
    add_subskills: list[ScorecardSubskillAddInput] = Field(default_factory=list)
    remove_subskill_ids: list[Uuid] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_changes(self):
        if not (
            self.add_categories
            or self.remove_category_ids
            or self.add_subskills
            or self.remove_subskill_ids
        ):
            raise ValueError("No updates provided")
        if len(set(self.remove_category_ids)) != len(self.remove_category_ids):
            raise ValueError("remove_category_ids contains duplicates")
        if len(set(self.remove_subskill_ids)) != len(self.remove_subskill_ids):
            raise ValueError("remove_subskill_ids contains duplicates")
        return self


# Auth & email


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: Optional[Text100] = None
    last_name: Optional[Text100] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class WelcomeEmailTestRequest(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    redirect_to: Optional[str] = None


class EvaluationReportItem(BaseModel):
    """Loosely typed on purpose: missing fields are reported per recipient."""

    to: str = ""
    athleteFirstName: Optional[str] = None
    coachName: Optional[str] = None
    appName: Optional[str] = None
    evaluationTitle: Optional[str] = None
    evaluationDate: Optional[str] = None
    teamOrOrgName: Optional[str] = None
    evaluationLink: Optional[str] = None
    subject: Optional[str] = None


class EvaluationReportsTestRequest(BaseModel):
    items: list[EvaluationReportItem] = Field(..., min_length=1)
    subject: Optional[str] = None
    app_name: Optional[str] = None


AuthLinkType = Literal["invite", "magiclink", "recovery", "signup"]


def require_uuid(value: Optional[str], name: str) -> str:
    """Validate an identifier taken from the path or query string."""
    value = (value or "").strip()
    if not is_uuid(value):
        raise BadRequestError(f"{name} (UUID) is required")
    return value
