# models.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional


@dataclass(frozen=True)
class TriageRecord:
    """
    Structured result of parsing one inbound report.

    symptoms:
        Lower-cased canonical symptom labels, deduplicated.

    location:
        Best location phrase found in the text, or None.
    """
    symptoms: FrozenSet[str]
    location: Optional[str] = None

    def sorted_symptoms(self) -> List[str]:
        """Symptoms in a stable order for display and storage."""
        return sorted(self.symptoms)


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate pair in degrees."""
    latitude: float
    longitude: float


@dataclass
class Facility:
    """
    A hospital or clinic found near the patient.
    Built fresh for every lookup and never persisted.
    """
    name: str
    address: str
    location: GeoPoint
    distance_m: int
    map_url: str
    is_approximate: bool = False
    emergency_capable: bool = False
    phone: Optional[str] = None
    website: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "lat": self.location.latitude,
            "lon": self.location.longitude,
            "distance": self.distance_m,
            "isApproximate": self.is_approximate,
            "emergency": self.emergency_capable,
            "phone": self.phone,
            "website": self.website,
            "mapUrl": self.map_url,
        }


class LookupStatus(str, Enum):
    """Outcome of a facility lookup."""
    OK = "ok"            # at least one facility found
    EMPTY = "empty"      # lookup ran, nothing usable came back
    FAILED = "failed"    # the radius search itself could not be completed


@dataclass
class FacilityLookup:
    """
    Facilities near a location plus how the lookup ended.

    EMPTY and OK are both successful lookups. FAILED means an upstream
    service broke; callers decide whether to surface that.
    """
    status: LookupStatus
    facilities: List[Facility] = field(default_factory=list)
    origin: Optional[GeoPoint] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is LookupStatus.FAILED


@dataclass
class ReplyContent:
    """Subject line and plain-text body of an auto-reply."""
    subject: str
    body: str


@dataclass
class InboundEmail:
    """
    A validated inbound email as delivered by the webhook.

    sender_name may be empty; sender_email, subject and body never are.
    """
    sender_email: str
    subject: str
    body: str
    sender_name: Optional[str] = None


@dataclass
class IntakeResult:
    """
    Everything produced while handling one inbound email.

    report:
        The stored medical report row.

    message_id:
        Identifier returned by the email service for the auto-reply.
    """
    report: dict
    record: TriageRecord
    reply: ReplyContent
    message_id: str
    received_at: datetime
