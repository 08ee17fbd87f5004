"""
Inbound health report service – REST API.
Run: uvicorn server:app --host 0.0.0.0 --port 3000
The mail provider posts inbound emails to POST /inbound-email; the
responder dashboard reads GET /api/reports and GET /api/stats.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from email_service import EmailDispatchError
from facilities_osm import lookup_nearby_facilities
from intake import MalformedPayloadError, process_inbound_email
from report_parser import parse_report
from report_store import ReportStore
from reports import compute_stats, list_reports
from triage_rules import has_critical_symptoms

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Rural Health Triage API",
    description="Parses inbound patient emails, replies with health tips and nearby facilities.",
    version="1.0.0",
)

# Dashboard may be served from another origin (restrict in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_store() -> ReportStore:
    return ReportStore()


# --- Request/Response models ---

class ParseRequest(BaseModel):
    text: str = Field(..., description="Raw report text")


class ParseResponse(BaseModel):
    symptoms: list[str]
    location: str | None = None
    critical: bool = False


class FacilityRequest(BaseModel):
    location: str = Field(..., min_length=1, description="Free-text location")


class FacilityResponse(BaseModel):
    status: str
    facilities: list[dict[str, Any]]


# --- Endpoints ---

@app.get("/health")
def health():
    """Health check for load balancers."""
    return {"status": "healthy"}


@app.post("/inbound-email")
def inbound_email(
    payload: dict[str, Any] = Body(...),
    store: ReportStore = Depends(get_store),
):
    """Webhook for inbound emails: parse, store, auto-reply."""
    try:
        result = process_inbound_email(payload, store)
    except MalformedPayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EmailDispatchError as e:
        # Report is stored; the acknowledgement is what failed
        raise HTTPException(status_code=502, detail=f"Failed to send auto-reply: {e}")
    except OSError as e:
        logger.error("Database error: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save medical report")

    return {
        "message": "Medical report saved successfully",
        "data": result.report,
        "messageId": result.message_id,
    }


@app.get("/api/reports")
def reports(store: ReportStore = Depends(get_store)):
    """All reports, newest first, each with its derived critical flag."""
    try:
        return list_reports(store)
    except (OSError, ValueError) as e:
        logger.error("Error fetching reports: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch reports")


@app.get("/api/stats")
def stats(store: ReportStore = Depends(get_store)):
    """Dashboard statistics."""
    try:
        return compute_stats(store)
    except (OSError, ValueError) as e:
        logger.error("Error fetching stats: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")


@app.post("/api/parse", response_model=ParseResponse)
def parse(req: ParseRequest):
    """Run the extraction pipeline on arbitrary text."""
    record = parse_report(req.text)
    return ParseResponse(
        symptoms=record.sorted_symptoms(),
        location=record.location,
        critical=has_critical_symptoms(record.symptoms),
    )


@app.post("/api/facilities", response_model=FacilityResponse)
def facilities(req: FacilityRequest):
    """Nearby hospitals/clinics for a location; never errors on upstream failure."""
    lookup = lookup_nearby_facilities(req.location)
    return FacilityResponse(
        status=lookup.status.value,
        facilities=[f.to_dict() for f in lookup.facilities],
    )
