# triage_rules.py
# ------------------------------------------------------------
# Rule-based critical-symptom flag for stored reports.
#
# A report is critical when any of its symptoms contains, or is
# contained by, an entry of CRITICAL_SYMPTOMS (case-insensitive).
# The flag is derived on every read and never stored.
#
# Note: containment runs both ways, so a bare "pain" symptom
# matches "chest pain". That breadth is kept as-is.
# ------------------------------------------------------------

from typing import Iterable, List, Sequence

from vocabulary import CRITICAL_SYMPTOMS


def _overlaps(symptom: str, critical: str) -> bool:
    return critical in symptom or symptom in critical


def matched_critical_symptoms(
    symptoms: Iterable[str],
    reference: Sequence[str] = CRITICAL_SYMPTOMS,
) -> List[str]:
    """
    Reference entries triggered by `symptoms`, in reference order.

    Blank symptom strings are ignored; they would otherwise be
    contained by every entry.
    """
    lowered = [s.strip().lower() for s in symptoms if s and s.strip()]
    return [
        critical
        for critical in reference
        if any(_overlaps(symptom, critical.lower()) for symptom in lowered)
    ]


def has_critical_symptoms(
    symptoms: Iterable[str],
    reference: Sequence[str] = CRITICAL_SYMPTOMS,
) -> bool:
    """True if any symptom warrants priority handling."""
    return bool(matched_critical_symptoms(symptoms, reference))
