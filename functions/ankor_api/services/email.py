"""
Transactional email: auth action links, welcome messages and evaluation
report notifications.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape
from typing import Any, Iterable, Optional

import requests
from supabase import Client

from ankor_api.config import Settings
from ankor_api.errors import ApiError, BadRequestError, UpstreamError
from ankor_api.mailer import EmailMessage, Mailer
from ankor_api.schemas import AuthLinkType, EvaluationReportItem

logger = logging.getLogger(__name__)

DEFAULT_REPORT_SUBJECT = "New evaluation available"

WELCOME_HTML = """
    <div style="font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial;">
      <h2>Welcome to {app_name}{name_suffix}</h2>
      <p>Your account is ready. Click below to finish setup:</p>
      <p><a href="{link}" style="display:inline-block;padding:12px 16px;background:#111;color:#fff;border-radius:10px;text-decoration:none">
        Finish setup
      </a></p>
      <p>If the button does not work, copy/paste this link:</p>
      <p>{link}</p>
    </div>
"""

REPORT_HTML = """
    <div style="font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial;">
      <p>Hi {athlete_first_name},</p>
      <p>
        A new evaluation has been submitted by Coach {coach_name} and is now
        available in your {app_name} account.
      </p>
      <h3>Summary</h3>
      <p>
        <strong>Evaluation:</strong> {evaluation_title}<br/>
        <strong>Date submitted:</strong> {evaluation_date}<br/>
        <strong>Team/Organization:</strong> {team_or_org_name}
      </p>
      <p>
        You can review the full evaluation, ratings, and coach feedback here:<br/>
        <a href="{evaluation_link}">{evaluation_link}</a>
      </p>
      <p>
        If you have questions about the feedback, reply to this email or message
        your coach in the app.
      </p>
      <p>Regards,<br/>{app_name} Support</p>
    </div>
"""

REPORT_TEXT = """Hi {athlete_first_name},

A new evaluation has been submitted by Coach {coach_name} and is now available in your {app_name} account.

Summary
Evaluation: {evaluation_title}
Date submitted: {evaluation_date}
Team/Organization: {team_or_org_name}

You can review the full evaluation, ratings, and coach feedback here:
{evaluation_link}

If you have questions about the feedback, reply to this email or message your coach in the app.

Regards,
{app_name} Support"""


def require_value(value: Optional[str], name: str) -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        raise BadRequestError(f"{name} is required")
    return trimmed


@dataclass
class ReportEmail:
    to: str
    subject: str
    athlete_first_name: str
    coach_name: str
    app_name: str
    evaluation_title: str
    evaluation_date: str
    team_or_org_name: str
    evaluation_link: str

    def template_fields(self, html: bool = False) -> dict:
        fields = {
            "athlete_first_name": self.athlete_first_name,
            "coach_name": self.coach_name,
            "app_name": self.app_name,
            "evaluation_title": self.evaluation_title,
            "evaluation_date": self.evaluation_date,
            "team_or_org_name": self.team_or_org_name,
            "evaluation_link": self.evaluation_link,
        }
        if html:
            return {key: escape(value) for key, value in fields.items()}
        return fields

    def render_html(self) -> str:
        return REPORT_HTML.format(**self.template_fields(html=True))

    def render_text(self) -> str:
        return REPORT_TEXT.format(**self.template_fields())


def normalize_report_item(
    item: EvaluationReportItem, default_subject: str, default_app_name: str
) -> ReportEmail:
    def read(value: Optional[str]) -> str:
        return value.strip() if isinstance(value, str) else ""

    return ReportEmail(
        to=require_value(item.to, "to"),
        subject=read(item.subject) or default_subject,
        athlete_first_name=read(item.athleteFirstName) or "there",
        coach_name=require_value(item.coachName, "coachName"),
        app_name=require_value(read(item.appName) or default_app_name, "appName"),
        evaluation_title=require_value(item.evaluationTitle, "evaluationTitle"),
        evaluation_date=require_value(item.evaluationDate, "evaluationDate"),
        team_or_org_name=require_value(item.teamOrOrgName, "teamOrOrgName"),
        evaluation_link=require_value(item.evaluationLink, "evaluationLink"),
    )


@dataclass
class EmailService:
    """Generates Supabase auth links and sends mail through ``mailer``."""

    client: Client
    mailer: Mailer
    settings: Settings

    def _from_address(self, override: Optional[str] = None) -> str:
        value = (override or self.settings.resend_from or "").strip()
        if not value:
            raise ApiError("RESEND_FROM is required")
        return value

    def generate_auth_link(
        self,
        email: str,
        link_type: AuthLinkType = "invite",
        redirect_to: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> tuple[str, Optional[str]]:
        """Return ``(action_link, user_id)`` for a Supabase auth email link."""
        params: dict[str, Any] = {
            "type": link_type,
            "email": require_value(email, "email").lower(),
        }
        options: dict[str, Any] = {}
        redirect = (redirect_to or self.settings.invite_redirect_url or "").strip()
        if redirect:
            options["redirect_to"] = redirect
        if data:
            options["data"] = data
        if options:
            params["options"] = options

        response = self.client.auth.admin.generate_link(params)
        properties = getattr(response, "properties", None)
        action_link = getattr(properties, "action_link", None) or ""
        if not action_link:
            raise UpstreamError("Auth link was not returned by Supabase")
        user = getattr(response, "user", None)
        return action_link, getattr(user, "id", None)

    def generate_invite_link(self, email: str, **kwargs: Any) -> tuple[str, Optional[str]]:
        return self.generate_auth_link(email, link_type="invite", **kwargs)

    def generate_magic_link(self, email: str, **kwargs: Any) -> tuple[str, Optional[str]]:
        return self.generate_auth_link(email, link_type="magiclink", **kwargs)

    def send_welcome_email(
        self,
        to: str,
        full_name: Optional[str],
        action_link: str,
        from_address: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> None:
        sender = self._from_address(from_address)
        recipient = require_value(to, "to")
        link = escape(require_value(action_link, "actionLink"))
        name = (full_name or "").strip()
        app_name = self.settings.app_name

        html = WELCOME_HTML.format(
            app_name=escape(app_name),
            name_suffix=f", {escape(name)}" if name else "",
            link=link,
        )
        self.mailer.send(
            EmailMessage(
                from_address=sender,
                to=recipient,
                subject=subject or f"Welcome to {app_name}",
                html=html,
            )
        )
        logger.info("Sent welcome email to %s", recipient)

    def invite_user_and_send_welcome(
        self,
        email: str,
        full_name: Optional[str] = None,
        redirect_to: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
        from_address: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> tuple[str, Optional[str]]:
        action_link, user_id = self.generate_invite_link(
            email, redirect_to=redirect_to, data=data
        )
        self.send_welcome_email(
            email, full_name, action_link, from_address=from_address, subject=subject
        )
        return action_link, user_id

    def send_bulk_evaluation_report_emails(
        self,
        items: Iterable[EvaluationReportItem],
        subject: Optional[str] = None,
        app_name: Optional[str] = None,
    ) -> dict:
        """
        Send one evaluation report per item. A failing item is reported in
        ``failed`` and does not stop the rest of the batch.
        """
        items = list(items)
        if not items:
            raise BadRequestError("items must be a non-empty array")

        sender = self._from_address()
        default_subject = (subject or "").strip() or DEFAULT_REPORT_SUBJECT
        default_app_name = (app_name or "").strip() or self.settings.app_name

        sent = 0
        failed = []
        for item in items:
            try:
                report = normalize_report_item(item, default_subject, default_app_name)
                self.mailer.send(
                    EmailMessage(
                        from_address=sender,
                        to=report.to,
                        subject=report.subject,
                        html=report.render_html(),
                        text=report.render_text(),
                    )
                )
            except (ApiError, requests.RequestException) as exc:
                recipient = (item.to or "").strip() or "(unknown)"
                message = getattr(exc, "message", None) or str(exc)
                logger.warning("Evaluation report to %s failed: %s", recipient, message)
                failed.append({"to": recipient, "error": message})
                continue
            sent += 1

        return {"sent": sent, "failed": failed}
