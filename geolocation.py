# geolocation.py
# ------------------------------------------------------------
# This module performs location text → geographic coordinate
# resolution using the OpenStreetMap Nominatim search API.
#
# It:
#   - loads environment variables (service URL, user agent, timeout)
#   - strips a leading "near" qualifier from the query
#   - calls Nominatim and takes the single top result
#   - raises a clean GeocodingError inside the module, but the
#     public geocode_location() turns every failure into None
# ------------------------------------------------------------

import logging               # For reporting upstream failures
import os                    # For reading environment variables
import re                    # For stripping the "near" qualifier
from typing import List, Optional

import requests              # For making HTTP requests to Nominatim
from dotenv import load_dotenv  # For loading .env file automatically

from models import GeoPoint

load_dotenv()  # Load variables from .env into environment on import

logger = logging.getLogger(__name__)

# Base URL for the Nominatim search endpoint
NOMINATIM_URL = os.environ.get("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")

# Nominatim's usage policy requires an identifying User-Agent
GEOCODER_USER_AGENT = os.environ.get("GEOCODER_USER_AGENT", "RuralHealthApp/1.0")

# Seconds before an unanswered geocoding request is abandoned
GEOCODE_TIMEOUT = float(os.environ.get("GEOCODE_TIMEOUT", "10"))

_NEAR_PREFIX = re.compile(r"^\s*near\s+", re.I)


class GeocodingError(Exception):
    """Custom exception for geocoding-related failures."""
    pass


def clean_location_text(location_text: str) -> str:
    """Drop a leading "near " and surrounding whitespace."""
    return _NEAR_PREFIX.sub("", location_text or "").strip()


def search_locations(query: str, limit: int = 1) -> List[dict]:
    """
    Run a Nominatim text search.

    Args:
        query (str): Free-form place or address text.
        limit (int): Maximum number of candidates to ask for.

    Returns:
        The decoded JSON list of candidates (possibly empty).

    Raises:
        GeocodingError:
            - If the request fails or times out
            - If Nominatim answers with a non-200 status
            - If the body is not a JSON list
    """
    params = {
        "q": query,
        "format": "json",
        "limit": limit,
        "addressdetails": 1,
    }
    headers = {"User-Agent": GEOCODER_USER_AGENT}

    try:
        resp = requests.get(NOMINATIM_URL, params=params, headers=headers, timeout=GEOCODE_TIMEOUT)
    except requests.RequestException as exc:
        raise GeocodingError(f"Geocoding request failed: {exc}") from exc

    if resp.status_code != 200:
        raise GeocodingError(f"HTTP error from geocoding service: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise GeocodingError("Geocoding service returned invalid JSON") from exc

    if not isinstance(data, list):
        raise GeocodingError(f"Unexpected geocoding payload: {type(data).__name__}")

    return data


def geocode_location(location_text: str) -> Optional[GeoPoint]:
    """
    Convert free-text location (city, address, "near X", ...) into
    coordinates.

    Returns:
        GeoPoint of the top candidate, or None when the text is empty,
        nothing matches, or the service is unreachable. Never raises.
    """
    query = clean_location_text(location_text)
    if not query:
        return None

    try:
        results = search_locations(query, limit=1)
    except GeocodingError as exc:
        logger.warning("Error geocoding location %r: %s", location_text, exc)
        return None

    if not results:
        logger.info("No coordinates found for location: %s", location_text)
        return None

    # Nominatim returns coordinates as strings
    first = results[0]
    try:
        return GeoPoint(latitude=float(first["lat"]), longitude=float(first["lon"]))
    except (KeyError, TypeError, ValueError):
        logger.warning("Geocoding result for %r has no usable coordinates", location_text)
        return None
