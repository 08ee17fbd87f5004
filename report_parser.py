# report_parser.py
# ------------------------------------------------------------
# Entry point of the extraction pipeline.
#
# It:
#   - normalizes inbound email text (collapses whitespace)
#   - runs the language pipeline once over the normalized text
#   - feeds the result to the symptom and location extractors
#   - returns an immutable TriageRecord
#
# Pure: no I/O besides debug logging.
# ------------------------------------------------------------

import logging
import re
from typing import Optional

from language import analyze
from location_extractor import extract_location
from models import TriageRecord
from symptom_extractor import extract_symptoms

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_PATIENT_NAME = re.compile(r"\bmy name is ([A-Za-z][A-Za-z' -]*?)(?=[.,!?;]|\s+and\b|\s+i\b|$)", re.I)


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace and trim. Case is preserved."""
    return _WHITESPACE.sub(" ", text or "").strip()


def parse_report(raw_text: str) -> TriageRecord:
    """
    Parse an inbound report into symptoms and a location.

    Never raises on odd input: text without symptoms or places
    yields an empty symptom set and no location.
    """
    text = normalize_text(raw_text)
    if not text:
        return TriageRecord(symptoms=frozenset(), location=None)

    phrases, places = analyze(text)
    record = TriageRecord(
        symptoms=extract_symptoms(text, phrases=phrases),
        location=extract_location(text, places=places),
    )

    logger.debug(
        "Parsed medical report: symptoms=%s location=%r",
        record.sorted_symptoms(),
        record.location,
    )
    return record


def extract_patient_name(text: str) -> Optional[str]:
    """Name given as "my name is ..." in the text, if any."""
    match = _PATIENT_NAME.search(normalize_text(text))
    if not match:
        return None
    name = match.group(1).strip()
    return name or None
