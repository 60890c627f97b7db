"""
Outbound email transport: Resend over HTTP and an in-memory test double.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

from ankor_api.errors import ApiError, UpstreamError

REQUEST_TIMEOUT = 30  # seconds


@dataclass
class EmailMessage:
    from_address: str
    to: str
    subject: str
    html: str
    text: Optional[str] = None

    def as_payload(self) -> dict:
        payload = {
            "from": self.from_address,
            "to": self.to,
            "subject": self.subject,
            "html": self.html,
        }
        if self.text is not None:
            payload["text"] = self.text
        return payload


class Mailer(Protocol):
    """Minimal transport interface used by the email service."""

    def send(self, message: EmailMessage) -> None:
        ...


@dataclass
class InMemoryMailer:
    """Records messages instead of sending them. Recipients listed in
    ``failing_recipients`` raise like a rejected send."""

    sent: list[EmailMessage] = field(default_factory=list)
    failing_recipients: set[str] = field(default_factory=set)

    def send(self, message: EmailMessage) -> None:
        if message.to in self.failing_recipients:
            raise UpstreamError(f"Resend failed: 422 rejected {message.to}")
        self.sent.append(message)

    def reset(self) -> None:
        self.sent.clear()
        self.failing_recipients.clear()


@dataclass
class ResendMailer:
    """Sends mail through the Resend REST API."""

    api_key: str
    api_url: str = "https://api.resend.com/emails"

    def send(self, message: EmailMessage) -> None:
        if not self.api_key.strip():
            raise ApiError("RESEND_API_KEY is required")
        response = requests.post(
            self.api_url,
            json=message.as_payload(),
            headers={"Authorization": f"Bearer {self.api_key.strip()}"},
            timeout=REQUEST_TIMEOUT,
        )
        if not response.ok:
            raise UpstreamError(f"Resend failed: {response.status_code} {response.text}")
