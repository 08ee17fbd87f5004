# ------------------------------------------------------------
# vocabulary.py
#
# Fixed reference data shared by the extractors, the triage
# rules and the auto-reply composer:
#   - the symptom vocabulary the extractor may emit
#   - the urgent-symptom list behind the critical flag
#   - per-symptom health tips and the generic fallback tips
#   - the ordered location pattern cascade
#
# Everything here is built once at import time and is read-only.
# ------------------------------------------------------------

import re
from types import MappingProxyType
from typing import Tuple

# Canonical symptom labels. Multi-word phrases are matched as a whole.
COMMON_SYMPTOMS: Tuple[str, ...] = (
    "fever",
    "cough",
    "pain",
    "vomiting",
    "chills",
    "headache",
    "dizziness",
    "fatigue",
    "nausea",
    "diarrhea",
    "shortness of breath",
    "chest pain",
    "joint pain",
    "muscle pain",
    "sore throat",
    "runny nose",
)

# Symptoms that flag a report for priority handling.
# Matching is substring-based in both directions (see triage_rules).
CRITICAL_SYMPTOMS: Tuple[str, ...] = (
    "chest pain",
    "shortness of breath",
    "severe bleeding",
    "difficulty breathing",
    "unconscious",
    "seizure",
    "stroke",
    "heart attack",
)

HEALTH_TIPS = MappingProxyType({
    "fever": (
        "Rest and stay hydrated",
        "Take over-the-counter fever reducers like acetaminophen",
        "Use cool compresses to reduce body temperature",
        "Monitor temperature regularly",
    ),
    "headache": (
        "Rest in a quiet, dark room",
        "Stay hydrated",
        "Take over-the-counter pain relievers",
        "Apply cold or warm compress to the affected area",
    ),
    "cough": (
        "Stay hydrated with warm liquids",
        "Use a humidifier",
        "Try honey for natural relief",
        "Avoid irritants like smoke",
    ),
    "chest pain": (
        "Seek immediate medical attention if severe",
        "Rest and avoid strenuous activity",
        "Monitor for other symptoms like shortness of breath",
        "Keep a record of when pain occurs",
    ),
    "vomiting": (
        "Stay hydrated with small sips of water",
        "Avoid solid foods until vomiting stops",
        "Rest and avoid sudden movements",
        "Seek medical help if vomiting persists",
    ),
    "diarrhea": (
        "Stay hydrated with oral rehydration solutions",
        "Eat bland foods like bananas and rice",
        "Avoid dairy and fatty foods",
        "Rest and monitor for dehydration",
    ),
    "shortness of breath": (
        "Sit upright and try to relax",
        "Use prescribed inhalers if available",
        "Seek immediate medical attention if severe",
        "Monitor for other symptoms",
    ),
    "fatigue": (
        "Get adequate rest",
        "Stay hydrated",
        "Eat nutritious meals",
        "Avoid strenuous activities",
    ),
})

# Used when none of the reported symptoms has its own tips.
GENERIC_TIPS: Tuple[str, ...] = (
    "Please monitor your symptoms and seek medical attention if they worsen.",
    "Stay hydrated and get adequate rest.",
)

_STREET_SUFFIX = (
    r"(?i:street|st|avenue|ave|road|rd|drive|dr|lane|ln|boulevard|blvd|"
    r"way|court|ct|place|pl|highway|hwy|parkway|pkwy|terrace|circle)"
)
_PREPOSITION = r"(?i:located\s+in|based\s+in|in|from|near|at)"
_PLACE_KIND = r"(?i:village|town|city|district|state|province)"
_LEADING_WORD = r"(?!(?:In|At|Near|From|To|Of|The|And|My|I)\b)"

# US state, DC and Canadian province abbreviations.
STATE_CODES: Tuple[str, ...] = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL",
    "GA", "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME",
    "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH",
    "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI",
    "SC", "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI",
    "WY",
    "AB", "BC", "MB", "NB", "NL", "NS", "NT", "NU", "ON", "PE",
    "QC", "SK", "YT",
)

# Codes that are also everyday words ("Hi Doctor, OK ..."); these
# only count as a state when a ZIP code follows.
AMBIGUOUS_STATE_CODES: Tuple[str, ...] = ("HI", "IN", "ME", "OH", "OK", "ON", "OR")

_ZIP = r"\d{5}(?:-\d{4})?"
_STATE_ZIP = (
    r"(?:(?:" + "|".join(c for c in STATE_CODES if c not in AMBIGUOUS_STATE_CODES) + r")\b"
    r"(?:\s+" + _ZIP + r")?"
    r"|(?:" + "|".join(AMBIGUOUS_STATE_CODES) + r")\s+" + _ZIP + r")"
)

# Ordered from most to least specific. Each pattern captures the
# location text in group 1.
LOCATION_PATTERNS: Tuple[Tuple[str, re.Pattern], ...] = (
    (
        # 30 Memorial Drive Avon, MA 02322 / 12 Main St.
        "street_address",
        re.compile(
            r"\b(\d{1,6}\s+(?:[A-Z0-9][A-Za-z0-9'.-]*\s+){1,4}?" + _STREET_SUFFIX + r"\b\.?"
            r"(?:,?\s+[A-Za-z][A-Za-z .'-]*?,\s*" + _STATE_ZIP + r")?)"
        ),
    ),
    (
        # Springfield, IL 62704 / Avon, MA / Tulsa, OK 74103
        "city_state_zip",
        re.compile(
            r"\b((?:" + _LEADING_WORD + r"[A-Z][a-zA-Z.'-]+\s+){0,2}"
            r"[A-Z][a-zA-Z.'-]+,\s*" + _STATE_ZIP + r")"
        ),
    ),
    (
        # near Springfield / from the Kibera district / based in Lake Town
        "place_phrase",
        re.compile(
            r"\b" + _PREPOSITION + r"\s+("
            r"(?:(?i:the)\s+)?[A-Za-z][A-Za-z'-]*(?:\s+[A-Za-z][A-Za-z'-]*){0,3}?\s+" + _PLACE_KIND + r"\b"
            r"|" + _LEADING_WORD + r"[A-Z][A-Za-z'-]*(?:\s+(?!I\b)[A-Z][A-Za-z'-]*){0,3}"
            r")"
        ),
    ),
)
