# intake.py
# ------------------------------------------------------------
# Handles one inbound email end to end:
#   validate payload → parse report → store report → send
#   auto-reply → store sent copy, with audit entries throughout.
#
# Malformed payloads are rejected before parsing. A failed
# auto-reply is recorded in the audit log and re-raised.
# ------------------------------------------------------------

import logging
from datetime import datetime, timezone
from email.utils import parseaddr
from typing import Any, Dict, Optional

from email_service import EmailDispatchError, mask_email, send_auto_reply
from models import InboundEmail, IntakeResult
from report_parser import extract_patient_name, parse_report
from report_store import AUDIT_TABLE, REPORTS_TABLE, SENT_EMAILS_TABLE, ReportStore

logger = logging.getLogger(__name__)


class MalformedPayloadError(ValueError):
    """Inbound webhook payload is missing the sender, subject or body."""
    pass


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_inbound(payload: Dict[str, Any]) -> InboundEmail:
    """
    Build an InboundEmail from a Postmark-style inbound payload.

    Accepted fields: From, FromName, FromFull {Email, Name},
    Subject, TextBody.

    Raises:
        MalformedPayloadError: if sender, subject or body is missing.
    """
    if not isinstance(payload, dict):
        raise MalformedPayloadError("Payload must be a JSON object")

    full = payload.get("FromFull") if isinstance(payload.get("FromFull"), dict) else {}
    display_name, address = parseaddr(_text(payload.get("From")))
    sender_email = _text(full.get("Email")) or address.strip()
    sender_name = _text(payload.get("FromName")) or _text(full.get("Name")) or display_name.strip()
    subject = _text(payload.get("Subject"))
    body = payload.get("TextBody") if isinstance(payload.get("TextBody"), str) else ""

    missing = [
        field
        for field, value in (("email", sender_email), ("subject", subject), ("text body", body.strip()))
        if not value
    ]
    if missing:
        raise MalformedPayloadError("Missing required fields: " + ", ".join(missing))

    return InboundEmail(
        sender_email=sender_email,
        subject=subject,
        body=body,
        sender_name=sender_name or None,
    )


def _audit(store: ReportStore, action: str, report_id: str, at: datetime, **details) -> None:
    store.insert_row(
        AUDIT_TABLE,
        {
            "action": action,
            "report_id": report_id,
            "created_at": at.isoformat(),
            "details": details,
        },
    )


def process_inbound_email(
    payload: Dict[str, Any],
    store: ReportStore,
    now: Optional[datetime] = None,
) -> IntakeResult:
    """
    Parse, store and acknowledge one inbound report.

    Raises:
        MalformedPayloadError: payload rejected, nothing stored.
        OSError: the report could not be stored. Failing to store
            the sent copy is only logged.
        EmailDispatchError: report stored, acknowledgement not sent.
    """
    inbound = validate_inbound(payload)
    received_at = now or datetime.now(timezone.utc)

    logger.info("Processing new medical report from: %s", mask_email(inbound.sender_email))
    record = parse_report(inbound.body)
    name = inbound.sender_name or extract_patient_name(inbound.body)

    report = store.insert_row(
        REPORTS_TABLE,
        {
            "email": inbound.sender_email,
            "sender_name": name,
            "subject": inbound.subject,
            "symptoms": record.sorted_symptoms(),
            "location": record.location,
            "received_at": received_at.isoformat(),
        },
    )
    _audit(store, "report_received", report["id"], received_at)

    try:
        reply, message_id = send_auto_reply(
            to=inbound.sender_email,
            name=name,
            symptoms=record.symptoms,
            location=record.location,
        )
    except EmailDispatchError as exc:
        _audit(store, "auto_reply_failed", report["id"], datetime.now(timezone.utc), error=str(exc))
        raise

    # Reply already sent: storage errors past this point are logged, not raised.
    sent_at = datetime.now(timezone.utc)
    try:
        store.insert_row(
            SENT_EMAILS_TABLE,
            {
                "report_id": report["id"],
                "to": inbound.sender_email,
                "subject": reply.subject,
                "body": reply.body,
                "message_id": message_id,
                "sent_at": sent_at.isoformat(),
            },
        )
        _audit(store, "auto_reply_sent", report["id"], sent_at, message_id=message_id)
    except OSError:
        logger.exception("Auto-reply %s sent but its copy could not be stored", message_id)

    return IntakeResult(
        report=report,
        record=record,
        reply=reply,
        message_id=message_id,
        received_at=received_at,
    )
