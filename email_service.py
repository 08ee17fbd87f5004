# ------------------------------------------------------------
# email_service.py
#
# Builds and sends the automatic acknowledgement email.
#
# It:
#   - looks up static health tips for the reported symptoms
#   - adds nearby facilities when the report had a location
#   - formats the reply (subject + plain-text body)
#   - sends it through Postmark's HTTP API
#
# Facility lookup problems only change the wording of the reply.
# A failed send raises EmailDispatchError: every report must be
# acknowledged, so the caller has to know.
# ------------------------------------------------------------

import logging
import os
from typing import Iterable, List, Optional, Tuple

import requests
from dotenv import load_dotenv

from facilities_osm import format_facility_list, lookup_nearby_facilities
from models import FacilityLookup, LookupStatus, ReplyContent
from vocabulary import GENERIC_TIPS, HEALTH_TIPS

load_dotenv()

logger = logging.getLogger(__name__)

POSTMARK_API_URL = os.environ.get("POSTMARK_API_URL", "https://api.postmarkapp.com/email")
POSTMARK_SERVER_API_TOKEN = os.environ.get("POSTMARK_SERVER_API_TOKEN")
POSTMARK_FROM_EMAIL = os.environ.get("POSTMARK_FROM_EMAIL", "noreply@yourdomain.com")
EMAIL_TIMEOUT = float(os.environ.get("EMAIL_TIMEOUT", "10"))

REPLY_SUBJECT = "We received your message – here's some help"
FACILITY_UNAVAILABLE = "Unable to fetch nearby medical facilities at this time."

_IMPORTANT_NOTES = (
    "These are general guidelines and not a substitute for professional medical advice",
    "If your symptoms worsen or you experience severe symptoms, please seek immediate medical attention",
    "Our medical team will review your case and may follow up with additional guidance",
    "The listed medical facilities are based on OpenStreetMap data and may not be complete",
)


class EmailDispatchError(Exception):
    """The email service did not accept the message."""
    pass


def mask_email(email: str) -> str:
    """Hide most of an address for logs: jo****n@****.com"""
    if not email or "@" not in email:
        return "****"
    local, domain = email.rsplit("@", 1)
    tld = domain.rsplit(".", 1)[-1]
    return f"{local[:2]}****{local[-1:]}@****.{tld}"


def get_health_tips(symptoms: Iterable[str]) -> List[str]:
    """
    Tips for the given symptoms, deduplicated, in first-seen order.
    Falls back to GENERIC_TIPS when none of the symptoms has tips.
    """
    tips = {}
    for symptom in symptoms:
        for tip in HEALTH_TIPS.get(symptom.lower(), ()):
            tips.setdefault(tip, None)

    if not tips:
        return list(GENERIC_TIPS)
    return list(tips)


def _bullets(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def facility_section(lookup: FacilityLookup) -> str:
    """Facility block of the reply; wording depends on the lookup outcome."""
    if lookup.status is LookupStatus.FAILED:
        return FACILITY_UNAVAILABLE
    return "Nearby Medical Facilities:\n" + format_facility_list(lookup.facilities)


def compose_reply(
    name: Optional[str],
    symptoms: Iterable[str],
    location: Optional[str],
    lookup: Optional[FacilityLookup] = None,
) -> ReplyContent:
    """
    Compose the auto-reply for one report.

    Args:
        name: Patient name for the greeting; "Patient" when missing.
        symptoms: Extracted symptom labels.
        location: Extracted location, or None.
        lookup: Pre-computed facility lookup. Looked up from
            `location` when omitted and a location is present.

    Returns:
        ReplyContent with the fixed subject and the formatted body.
    """
    ordered = sorted(set(symptoms))
    tips = get_health_tips(ordered)

    if location and lookup is None:
        lookup = lookup_nearby_facilities(location)

    location_info = f" in {location}" if location else ""
    symptom_lines = _bullets(ordered) if ordered else "- No specific symptoms identified"

    sections = [
        f"Dear {name or 'Patient'},",
        "Thank you for reaching out to our medical support system"
        f"{location_info}. We have received your report and would like "
        "to provide some immediate guidance.",
        "Reported Symptoms:\n" + symptom_lines,
        "Immediate Health Tips:\n" + _bullets(tips),
    ]
    if location and lookup is not None:
        sections.append(facility_section(lookup))
    sections.append("Important Notes:\n" + _bullets(_IMPORTANT_NOTES))
    sections.append("Stay safe and take care,\nYour Rural Health Support Team")

    return ReplyContent(subject=REPLY_SUBJECT, body="\n\n".join(sections))


def send_email(to: str, subject: str, body: str) -> str:
    """
    Send a plain-text email through Postmark.

    Returns:
        The Postmark MessageID.

    Raises:
        EmailDispatchError: missing token, transport failure, non-2xx
        response, or a non-zero Postmark ErrorCode.
    """
    if not POSTMARK_SERVER_API_TOKEN:
        raise EmailDispatchError("POSTMARK_SERVER_API_TOKEN is not set.")

    payload = {
        "From": POSTMARK_FROM_EMAIL,
        "To": to,
        "Subject": subject,
        "TextBody": body,
        "MessageStream": "outbound",
    }
    headers = {
        "Accept": "application/json",
        "X-Postmark-Server-Token": POSTMARK_SERVER_API_TOKEN,
    }

    try:
        resp = requests.post(POSTMARK_API_URL, json=payload, headers=headers, timeout=EMAIL_TIMEOUT)
    except requests.RequestException as exc:
        raise EmailDispatchError(f"Email service unreachable: {exc}") from exc

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    if resp.status_code >= 300 or data.get("ErrorCode", 0) != 0:
        message = data.get("Message") or f"HTTP {resp.status_code}"
        raise EmailDispatchError(f"Email rejected: {message}")

    message_id = data.get("MessageID")
    if not message_id:
        raise EmailDispatchError("Email service returned no MessageID")
    return message_id


def send_auto_reply(
    to: str,
    name: Optional[str],
    symptoms: Iterable[str],
    location: Optional[str],
) -> Tuple[ReplyContent, str]:
    """
    Compose and send the auto-reply.

    Returns:
        (ReplyContent, message_id)

    Raises:
        EmailDispatchError: propagated from send_email.
    """
    reply = compose_reply(name, symptoms, location)

    logger.info("Sending auto-reply to: %s", mask_email(to))
    try:
        message_id = send_email(to, reply.subject, reply.body)
    except EmailDispatchError:
        logger.error("Error sending auto-reply to %s", mask_email(to), exc_info=True)
        raise

    logger.info("Auto-reply sent successfully: %s", message_id)
    return reply, message_id
