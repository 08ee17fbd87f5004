# reports.py
# ------------------------------------------------------------
# Read side for responders: stored reports with their critical
# flag, and the dashboard summary numbers.
# ------------------------------------------------------------

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from report_store import REPORTS_TABLE, ReportStore
from triage_rules import has_critical_symptoms, matched_critical_symptoms


def with_critical_flag(report: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of `report` with "critical" and "criticalSymptoms" derived from its symptoms."""
    symptoms = report.get("symptoms") or []
    enriched = dict(report)
    enriched["critical"] = has_critical_symptoms(symptoms)
    enriched["criticalSymptoms"] = matched_critical_symptoms(symptoms)
    return enriched


def list_reports(store: ReportStore, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Reports newest first. The critical flag is recomputed, never read from storage."""
    rows = store.query(REPORTS_TABLE, order_by="received_at", descending=True, limit=limit)
    return [with_critical_flag(r) for r in rows]


def _parse_time(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_stats(store: ReportStore, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Dashboard summary:
        totalReports, reportsToday (since UTC midnight),
        uniqueLocations, commonSymptom ("None" if no symptoms yet)
    """
    now = now or datetime.now(timezone.utc)
    midnight = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

    rows = store.query(REPORTS_TABLE)

    today = 0
    for row in rows:
        received = _parse_time(row.get("received_at"))
        if received is not None and received >= midnight:
            today += 1

    locations = {row["location"] for row in rows if row.get("location")}

    counts = Counter()
    for row in rows:
        counts.update(row.get("symptoms") or [])
    common = counts.most_common(1)[0][0] if counts else "None"

    return {
        "totalReports": len(rows),
        "reportsToday": today,
        "uniqueLocations": len(locations),
        "commonSymptom": common,
    }
