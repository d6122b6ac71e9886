"""
Transactional email via the Resend HTTP API.

A failed delivery is logged and returned as ``{"error": ...}`` so the
request that triggered it still completes. The password senders raise
LookupError for an unknown org or user; the reimbursement sender returns it
as an error like any other failed send.
"""

from __future__ import annotations

import uuid
from html import escape
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.organization import Organization
from app.services import organizations as org_service
from app.services import users as user_service
from fundbook_shared.schemas.common import ReimbursementRequestStatus

log = structlog.get_logger()
settings = get_settings()

PASSWORD_PATH = "/passwords/new"


class EmailDeliveryError(Exception):
    """The email provider rejected or failed a send."""


async def send_email(
    *,
    sender: str,
    to: str,
    subject: str,
    html: str,
    client: Optional[httpx.AsyncClient] = None,
) -> dict[str, Any]:
    """Send one email and return the provider's response body."""
    payload = {"from": sender, "to": [to], "subject": subject, "html": html}
    headers = {"Authorization": f"Bearer {settings.resend_api_key}"}

    if client is None:
        async with httpx.AsyncClient(timeout=settings.email_timeout_seconds) as own_client:
            resp = await own_client.post(settings.resend_api_url, json=payload, headers=headers)
    else:
        resp = await client.post(settings.resend_api_url, json=payload, headers=headers)

    if resp.status_code >= 400:
        raise EmailDeliveryError(f"Email provider returned {resp.status_code}: {resp.text}")
    try:
        return resp.json()
    except ValueError as e:
        raise EmailDeliveryError(f"Email provider returned a non-JSON body: {resp.text!r}") from e


async def _deliver(
    kind: str,
    *,
    org: Organization,
    to: str,
    subject: str,
    html: str,
    client: Optional[httpx.AsyncClient] = None,
) -> dict[str, Any]:
    try:
        data = await send_email(sender=org.from_address, to=to, subject=subject, html=html, client=client)
    except (httpx.HTTPError, EmailDeliveryError) as e:
        log.error("email.send_failed", kind=kind, org_id=str(org.id), error=str(e))
        return {"error": e}
    log.info("email.sent", kind=kind, org_id=str(org.id))
    return {"data": data}


def password_link(org: Organization, token: str, *, is_reset: bool = False) -> str:
    params = {"token": token}
    if is_reset:
        params["isReset"] = "true"
    return f"{org.base_url}{PASSWORD_PATH}?{urlencode(params)}"


async def _require_org(org_id: uuid.UUID, session: AsyncSession) -> Organization:
    org = await org_service.find_organization(org_id, session)
    if org is None:
        raise LookupError(f"Organization {org_id} not found")
    return org


async def send_password_reset_email(
    *,
    email: str,
    token: str,
    org_id: uuid.UUID,
    session: AsyncSession,
    client: Optional[httpx.AsyncClient] = None,
) -> dict[str, Any]:
    org = await _require_org(org_id, session)
    url = password_link(org, token, is_reset=True)
    html = f"""
        <p>Hi there,</p>
        <p>Someone requested a password reset for your {escape(org.name)} account. If this was you, please click the link below to reset your password. The link will expire in 15 minutes.</p>
        <p><a href="{url}" target="_blank">Reset Password</a></p>
        <p>If you did not request a password reset, you can safely ignore this email.</p>
    """
    return await _deliver(
        "password_reset", org=org, to=email, subject="Reset Your Password", html=html, client=client
    )


async def send_password_setup_email(
    *,
    email: str,
    token: str,
    org_id: uuid.UUID,
    session: AsyncSession,
    client: Optional[httpx.AsyncClient] = None,
) -> dict[str, Any]:
    org = await _require_org(org_id, session)
    user = await user_service.find_user_by_username(email, session)
    if user is None:
        raise LookupError(f"User {email} not found")
    first_name = user.contact.first_name if user.contact else ""
    url = password_link(org, token)
    html = f"""
        <p>Hi {escape(first_name)},</p>
        <p>You've been invited to {escape(org.name)}. Click the link below to set up your password.</p>
        <p><a href="{url}" target="_blank">Set Up Password</a></p>
    """
    return await _deliver(
        "password_setup", org=org, to=email, subject="Setup Your Password", html=html, client=client
    )


async def send_reimbursement_request_update_email(
    *,
    email: str,
    status: ReimbursementRequestStatus,
    org_id: uuid.UUID,
    session: AsyncSession,
    note: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> dict[str, Any]:
    try:
        org = await _require_org(org_id, session)
    except LookupError as e:
        log.error("email.send_failed", kind="reimbursement_update", org_id=str(org_id), error=str(e))
        return {"error": e}
    status_label = status.value.capitalize()
    note_html = f"<p>Administrator note: {escape(note)}</p>" if note else ""
    html = f"""
        <p>Hi there,</p>
        <p>Your reimbursement request has been {status_label}.</p>
        {note_html}
    """
    return await _deliver(
        "reimbursement_update",
        org=org,
        to=email,
        subject=f"Reimbursement Request {status_label}",
        html=html,
        client=client,
    )
