"""
Request authentication and organization role guards.

Token verification is delegated to Supabase Auth; membership and role come
from the ``org_members`` table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Literal, Optional

from fastapi import Depends, Header, Request
from supabase import AuthError, Client

from ankor_api.db import fetch_one
from ankor_api.dependencies import get_supabase
from ankor_api.errors import BadRequestError, ForbiddenError, UnauthorizedError
from ankor_api.schemas import is_uuid

logger = logging.getLogger(__name__)

Role = Literal["coach", "athlete", "parent"]
ALL_ROLES: tuple[Role, ...] = ("coach", "athlete", "parent")


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    email: Optional[str]


@dataclass(frozen=True)
class RequestContext:
    user_id: str
    org_id: str
    role: str

    def check_org(self, org_id: Optional[str]) -> None:
        """Reject payloads that name an organization other than the guarded one."""
        if org_id and org_id != self.org_id:
            raise BadRequestError("org_id does not match authorized organization")


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        return ""
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    client: Client = Depends(get_supabase),
) -> AuthenticatedUser:
    token = bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Missing bearer token")
    try:
        response = client.auth.get_user(token)
    except AuthError as exc:
        raise UnauthorizedError("Invalid or expired token") from exc
    user = getattr(response, "user", None)
    if user is None or not getattr(user, "id", None):
        raise UnauthorizedError("Invalid or expired token")
    return AuthenticatedUser(user_id=str(user.id), email=getattr(user, "email", None))


def lookup_org_role(client: Client, org_id: str, user_id: str) -> Optional[str]:
    row = fetch_one(
        client.table("org_members")
        .select("role")
        .eq("org_id", org_id)
        .eq("user_id", user_id)
    )
    if not row:
        return None
    return row.get("role")


def _org_id_reader(source: str, field: str) -> Callable:
    if source == "body":

        async def read_from_body(request: Request) -> str:
            try:
                payload = await request.json()
            except ValueError:
                raise BadRequestError("Invalid JSON payload") from None
            if not isinstance(payload, dict):
                raise BadRequestError("Invalid JSON payload")
            return str(payload.get(field) or "").strip()

        return read_from_body

    if source == "path":

        def read_from_path(request: Request) -> str:
            return str(request.path_params.get(field) or "").strip()

        return read_from_path

    def read_from_query(request: Request) -> str:
        return (request.query_params.get(field) or "").strip()

    return read_from_query


def require_org_role(
    roles: Iterable[Role],
    source: Literal["query", "body", "path"] = "query",
    field: str = "org_id",
) -> Callable[..., RequestContext]:
    """
    Build a dependency that authenticates the caller and checks their role in
    the organization named by ``field`` (from the query string, JSON body or
    path).
    """
    allowed = frozenset(roles)
    read_org_id = _org_id_reader(source, field)

    def guard(
        org_id: str = Depends(read_org_id),
        user: AuthenticatedUser = Depends(get_current_user),
        client: Client = Depends(get_supabase),
    ) -> RequestContext:
        if not is_uuid(org_id):
            raise BadRequestError(f"{field} (UUID) is required")
        role = lookup_org_role(client, org_id, user.user_id)
        if role is None:
            raise ForbiddenError("Not a member of this organization")
        if role not in allowed:
            logger.info(
                "Role %s denied for org %s (allowed: %s)", role, org_id, sorted(allowed)
            )
            raise ForbiddenError("Insufficient role for this organization")
        return RequestContext(user_id=user.user_id, org_id=org_id, role=role)

    return guard
