"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends
from supabase import Client

from ankor_api.config import get_settings
from ankor_api.db import create_auth_client, create_supabase_client
from ankor_api.mailer import InMemoryMailer, Mailer, ResendMailer
from ankor_api.services.email import EmailService
from ankor_api.storage import StorageClient, SupabaseStorageClient

_supabase_client: Client | None = None
_mailer: Mailer | None = None


def get_supabase() -> Client:
    """
    Return the singleton service-role client.
    """
    global _supabase_client
    if _supabase_client:
        return _supabase_client

    settings = get_settings()
    _supabase_client = create_supabase_client(
        settings.supabase_url or "", settings.supabase_service_role_key or ""
    )
    return _supabase_client


def get_auth_client() -> Client:
    """
    Return a fresh, session-isolated client for password auth flows.
    """
    settings = get_settings()
    return create_auth_client(
        settings.supabase_url or "",
        settings.supabase_anon_key or settings.supabase_service_role_key or "",
    )


def get_storage(client: Client = Depends(get_supabase)) -> StorageClient:
    return SupabaseStorageClient(client)


def get_mailer() -> Mailer:
    global _mailer
    if _mailer:
        return _mailer

    settings = get_settings()
    if settings.use_in_memory_backends:
        _mailer = InMemoryMailer()
    else:
        _mailer = ResendMailer(
            api_key=settings.resend_api_key,
            api_url=settings.resend_api_url,
        )
    return _mailer


def get_email_service(
    client: Client = Depends(get_supabase),
    mailer: Mailer = Depends(get_mailer),
) -> EmailService:
    return EmailService(client=client, mailer=mailer, settings=get_settings())
