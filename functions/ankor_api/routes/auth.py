"""
Password sign-up and sign-in, plus authenticated email test hooks.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from supabase import AuthError, Client

from ankor_api.auth import AuthenticatedUser, get_current_user
from ankor_api.dependencies import get_auth_client, get_email_service
from ankor_api.errors import UnauthorizedError, UpstreamError, platform_error_message
from ankor_api.schemas import (
    EvaluationReportsTestRequest,
    LoginRequest,
    SignupRequest,
    WelcomeEmailTestRequest,
)
from ankor_api.services.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter()


def _user_summary(user) -> dict:
    return {"id": getattr(user, "id", None), "email": getattr(user, "email", None)}


@router.post("/signup", status_code=201)
def signup(payload: SignupRequest, client: Client = Depends(get_auth_client)):
    metadata = {
        key: value
        for key, value in (
            ("first_name", payload.first_name),
            ("last_name", payload.last_name),
        )
        if value
    }
    credentials = {"email": payload.email, "password": payload.password}
    if metadata:
        credentials["options"] = {"data": metadata}
    response = client.auth.sign_up(credentials)
    if response.user is None:
        raise UpstreamError("User was not returned by Supabase")
    return {"ok": True, "user": _user_summary(response.user)}


@router.post("/login")
def login(payload: LoginRequest, client: Client = Depends(get_auth_client)):
    try:
        response = client.auth.sign_in_with_password(
            {"email": payload.email, "password": payload.password}
        )
    except AuthError as exc:
        logger.info("Login failed for %s", payload.email)
        raise UnauthorizedError(platform_error_message(exc)) from exc
    session = response.session
    if session is None:
        raise UnauthorizedError("Invalid login credentials")
    return {
        "ok": True,
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_in": session.expires_in,
        "user": _user_summary(response.user),
    }


@router.post("/welcome-email/test")
def send_test_welcome_email(
    payload: WelcomeEmailTestRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    emails: EmailService = Depends(get_email_service),
):
    action_link, user_id = emails.invite_user_and_send_welcome(
        payload.email,
        full_name=payload.full_name,
        redirect_to=payload.redirect_to,
    )
    return {"ok": True, "action_link": action_link, "user_id": user_id}


@router.post("/evaluation-reports/test")
def send_test_evaluation_reports(
    payload: EvaluationReportsTestRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    emails: EmailService = Depends(get_email_service),
):
    result = emails.send_bulk_evaluation_report_emails(
        payload.items, subject=payload.subject, app_name=payload.app_name
    )
    return {"ok": True, **result}
