# Overview: Delivery of rendered statements through a transactional-email HTTP API.

"""
Email Service

The provider receives {from, to, subject, html} as JSON and answers with
{"id": ...}. Every call is bounded by EMAIL_TIMEOUT_SECONDS; a timeout or
transport failure is a retryable DeliveryError, a rejected request is a
non-retryable one carrying the provider's payload. Nothing is retried
automatically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, tzinfo

import httpx
from flask import current_app

from ..errors import DeliveryError, ValidationError
from ..validation import EMAIL_RE
from .aggregation_service import SalesFilter
from .invoice_service import (
    InvoiceStatement,
    SellerIdentity,
    build_brand_statement,
    render_invoice_html,
    statement_from_payload,
)

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Payout Invoice"


@dataclass
class EmailClient:
    api_url: str
    api_key: str
    sender: str
    timeout: float = 10.0
    transport: httpx.BaseTransport | None = None

    @classmethod
    def from_config(cls, config, transport: httpx.BaseTransport | None = None) -> "EmailClient":
        if not config.get("EMAIL_API_URL") or not config.get("EMAIL_SENDER"):
            raise DeliveryError("Email service is not configured (EMAIL_API_URL, EMAIL_SENDER)")
        return cls(
            api_url=config["EMAIL_API_URL"],
            api_key=config.get("EMAIL_API_KEY") or "",
            sender=config["EMAIL_SENDER"],
            timeout=float(config.get("EMAIL_TIMEOUT_SECONDS") or 10),
            transport=transport,
        )

    def send(self, *, to_email: str, to_name: str | None, subject: str, html: str) -> str:
        """POST one message; returns the provider's message id."""
        recipient = f"{to_name} <{to_email}>" if to_name else to_email
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        body = {"from": self.sender, "to": [recipient], "subject": subject, "html": html}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.api_url, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise DeliveryError(
                f"Email provider did not answer within {self.timeout:g}s",
                retryable=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Email provider unreachable: {exc}", retryable=True) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {"body": response.text[:500]}

        if response.is_error:
            raise DeliveryError(
                f"Email provider rejected the message (HTTP {response.status_code})",
                details={"provider": payload},
                retryable=response.status_code >= 500 or response.status_code == 429,
            )

        message_id = payload.get("id") if isinstance(payload, dict) else None
        return str(message_id) if message_id is not None else ""


def _check_recipient(to_email: str | None) -> str:
    if to_email is not None and not isinstance(to_email, str):
        raise ValidationError("A valid to_email is required")
    to_email = (to_email or "").strip()
    if not to_email or not EMAIL_RE.match(to_email):
        raise ValidationError("A valid to_email is required")
    return to_email


def deliver_statement(
    statement: InvoiceStatement,
    *,
    to_email: str,
    subject: str | None,
    client: EmailClient,
    seller: SellerIdentity,
) -> str:
    to_email = _check_recipient(to_email)
    html = render_invoice_html(statement, seller)
    try:
        message_id = client.send(
            to_email=to_email,
            to_name=statement.recipient_name,
            subject=subject or DEFAULT_SUBJECT,
            html=html,
        )
    except DeliveryError:
        logger.exception("Statement for %s to %s failed", statement.recipient_name, to_email)
        raise
    logger.info("Statement for %s sent to %s (id=%s)", statement.recipient_name, to_email, message_id)
    return message_id


def send_invoice_email(
    to_email: str,
    to_name: str,
    subject: str | None,
    data: dict,
    *,
    client: EmailClient | None = None,
) -> str:
    """
    Email collaborator contract: render `data` server-side and send it.
    """
    statement = statement_from_payload(data, to_name=to_name or "Brand Partner", to_email=to_email)
    return deliver_statement(
        statement,
        to_email=to_email,
        subject=subject,
        client=client or EmailClient.from_config(current_app.config),
        seller=SellerIdentity.from_config(current_app.config),
    )


def send_brand_statement(
    brand_name: str,
    filters: SalesFilter | None,
    tz: tzinfo,
    invoice_date: date | str,
    *,
    to_email: str | None = None,
    subject: str | None = None,
    client: EmailClient | None = None,
) -> tuple[InvoiceStatement, str]:
    statement = build_brand_statement(brand_name, filters, tz, invoice_date)
    recipient = to_email or statement.recipient_email
    if not recipient:
        raise ValidationError(f"{statement.recipient_name} has no contact email")
    message_id = deliver_statement(
        statement,
        to_email=recipient,
        subject=subject or f"Payout statement - {statement.period_label}",
        client=client or EmailClient.from_config(current_app.config),
        seller=SellerIdentity.from_config(current_app.config),
    )
    return statement, message_id
