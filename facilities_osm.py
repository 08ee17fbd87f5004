# ------------------------------------------------------------
# facilities_osm.py
#
# This module finds hospitals and clinics near a patient's
# reported location using OpenStreetMap data.
# It:
#   - geocodes the location text (geolocation.geocode_location)
#   - runs an Overpass radius search for amenity=hospital|clinic
#   - resolves each facility's coordinates through a fallback chain
#     (point → centre → bounding box → re-geocoded address)
#   - computes distances using the Haversine formula
#   - dedupes by name, sorts by distance, keeps the nearest few
#
# Lookups soft-fail: callers get a FacilityLookup whose status says
# whether the search failed, came back empty, or found facilities.
# ------------------------------------------------------------

import logging
import math      # For trigonometric functions in the Haversine distance
import os        # To read environment variables (service URL, timeouts)
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

import requests  # HTTP library used to call the Overpass API
from dotenv import load_dotenv

from geolocation import geocode_location
from models import Facility, FacilityLookup, GeoPoint, LookupStatus

load_dotenv()

logger = logging.getLogger(__name__)

# Overpass interpreter endpoint
OVERPASS_URL = os.environ.get("OVERPASS_URL", "https://overpass-api.de/api/interpreter")

# Client-side timeout for the radius search, in seconds
OVERPASS_TIMEOUT = float(os.environ.get("OVERPASS_TIMEOUT", "30"))

SEARCH_RADIUS_M = 5000
MAX_FACILITIES = 3
MAX_GEOCODE_WORKERS = 4

# Earth's mean radius in meters
EARTH_RADIUS_M = 6371000.0

FACILITY_AMENITIES = ("hospital", "clinic")
NO_ADDRESS = "Address not available"

# Punctuation kept literal in the map link query
MAP_QUERY_SAFE = "!~*'()"


class FacilitySearchError(Exception):
    """Raised when the radius search service cannot be queried."""
    pass


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """
    Great-circle distance between two points using the Haversine formula.
    Returns distance in meters.
    """
    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )

    # 'c' is the angular distance in radians
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def round_meters(distance: float) -> int:
    """Round half up to the nearest whole meter."""
    return int(math.floor(distance + 0.5))


def get_map_link(point: GeoPoint, name: str) -> str:
    """OpenStreetMap URL centred on a facility."""
    return (
        f"https://www.openstreetmap.org/?mlat={point.latitude}&mlon={point.longitude}"
        f"&zoom=17&query={quote(name, safe=MAP_QUERY_SAFE)}"
    )


def build_overpass_query(origin: GeoPoint, radius_m: int = SEARCH_RADIUS_M) -> str:
    """Overpass QL for hospital/clinic nodes and ways around `origin`."""
    around = f"around:{radius_m},{origin.latitude},{origin.longitude}"
    clauses = " ".join(
        f'{kind}["amenity"="{amenity}"]({around});'
        for amenity in FACILITY_AMENITIES
        for kind in ("node", "way")
    )
    return f"[out:json][timeout:25];({clauses});out center;"


def fetch_elements(origin: GeoPoint, radius_m: int = SEARCH_RADIUS_M) -> List[dict]:
    """
    Run the radius search and return its raw elements.

    Raises:
        FacilitySearchError: on transport errors, non-200 responses
        or a body that is not Overpass JSON.
    """
    query = build_overpass_query(origin, radius_m)
    try:
        resp = requests.post(OVERPASS_URL, data={"data": query}, timeout=OVERPASS_TIMEOUT)
    except requests.RequestException as exc:
        raise FacilitySearchError(f"Overpass request failed: {exc}") from exc

    if resp.status_code != 200:
        raise FacilitySearchError(f"HTTP error from Overpass: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise FacilitySearchError("Overpass returned invalid JSON") from exc

    if not isinstance(data, dict):
        raise FacilitySearchError("Unexpected Overpass payload")

    elements = data.get("elements")
    if elements is None:
        return []
    if not isinstance(elements, list):
        raise FacilitySearchError(f"Unexpected Overpass elements: {type(elements).__name__}")
    return elements


def build_address(tags: Dict[str, str]) -> List[str]:
    """Non-empty street, city, state and postcode tags, in that order."""
    keys = ("addr:street", "addr:city", "addr:state", "addr:postcode")
    return [tags[k].strip() for k in keys if isinstance(tags.get(k), str) and tags[k].strip()]


def resolve_coordinates(element: dict) -> Optional[Tuple[GeoPoint, bool]]:
    """
    Coordinates carried by the element itself.

    Returns (point, is_approximate), or None when the element has
    neither a point, a centre, nor bounds. Centre and bounds are
    derived from the way's shape, so both count as approximate.
    """
    try:
        if element.get("lat") is not None and element.get("lon") is not None:
            return GeoPoint(float(element["lat"]), float(element["lon"])), False

        center = element.get("center")
        if center:
            return GeoPoint(float(center["lat"]), float(center["lon"])), True

        bounds = element.get("bounds")
        if bounds:
            lat = (float(bounds["minlat"]) + float(bounds["maxlat"])) / 2
            lon = (float(bounds["minlon"]) + float(bounds["maxlon"])) / 2
            return GeoPoint(lat, lon), True
    except (KeyError, TypeError, ValueError):
        logger.warning("Malformed coordinates on element %s", element.get("id"))

    return None


def _geocode_addresses(addresses: List[str]) -> List[Optional[GeoPoint]]:
    """Geocode several addresses concurrently, preserving order."""
    if not addresses:
        return []
    workers = min(MAX_GEOCODE_WORKERS, len(addresses))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(geocode_location, addresses))


def _build_facilities(origin: GeoPoint, elements: List[dict]) -> List[Facility]:
    """Resolve, measure, dedupe, sort and truncate raw elements."""
    # (tags, point, is_approximate); point None means "re-geocode address"
    resolved: List[Tuple[dict, Optional[GeoPoint], bool]] = []
    pending: List[int] = []
    pending_addresses: List[str] = []

    for element in elements:
        if not isinstance(element, dict):
            logger.warning("Skipping malformed Overpass element: %r", element)
            continue
        tags = element.get("tags")
        if not isinstance(tags, dict) or not isinstance(tags.get("name"), str):
            continue
        name = tags["name"].strip()
        if not name:
            continue

        coords = resolve_coordinates(element)
        if coords is not None:
            resolved.append((tags, coords[0], coords[1]))
            continue

        parts = build_address(tags)
        if not parts:
            logger.warning("No coordinates or address available for facility: %s", name)
            continue

        pending.append(len(resolved))
        pending_addresses.append(", ".join([name] + parts))
        resolved.append((tags, None, True))

    for index, point in zip(pending, _geocode_addresses(pending_addresses)):
        tags, _, approx = resolved[index]
        if point is None:
            logger.warning("Could not geocode address for facility: %s", tags.get("name"))
        resolved[index] = (tags, point, approx)

    facilities: List[Facility] = []
    seen = set()
    for tags, point, approx in resolved:
        if point is None:
            continue
        name = tags["name"].strip()
        # First occurrence of a name wins
        if name in seen:
            continue
        seen.add(name)

        facilities.append(
            Facility(
                name=name,
                address=", ".join(build_address(tags)) or NO_ADDRESS,
                location=point,
                distance_m=round_meters(haversine_m(origin, point)),
                map_url=get_map_link(point, name),
                is_approximate=approx,
                emergency_capable=tags.get("emergency") == "yes",
                phone=tags.get("contact:phone") or tags.get("phone"),
                website=tags.get("website"),
            )
        )

    # Sort by ascending distance (closest first); sort is stable
    facilities.sort(key=lambda f: f.distance_m)
    return facilities[:MAX_FACILITIES]


def lookup_nearby_facilities(location_text: str) -> FacilityLookup:
    """
    Find up to MAX_FACILITIES hospitals/clinics near `location_text`.

    Returns:
        FacilityLookup with status
          OK     - facilities found, nearest first
          EMPTY  - location could not be geocoded or nothing usable nearby
          FAILED - the radius search service errored or sent
                   a payload that could not be read
    """
    origin = geocode_location(location_text)
    if origin is None:
        return FacilityLookup(status=LookupStatus.EMPTY)

    try:
        elements = fetch_elements(origin)
    except FacilitySearchError as exc:
        logger.warning("Error finding nearby facilities for %r: %s", location_text, exc)
        return FacilityLookup(status=LookupStatus.FAILED, origin=origin, error=str(exc))

    try:
        facilities = _build_facilities(origin, elements)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Unreadable facility data for %r: %r", location_text, exc)
        return FacilityLookup(status=LookupStatus.FAILED, origin=origin, error=str(exc))

    status = LookupStatus.OK if facilities else LookupStatus.EMPTY
    return FacilityLookup(status=status, facilities=facilities, origin=origin)


def find_nearby_facilities(location_text: str) -> List[Facility]:
    """Facilities near `location_text`; an empty list on any failure."""
    return lookup_nearby_facilities(location_text).facilities


def format_distance(distance_m: int) -> str:
    if distance_m < 1000:
        return f"{distance_m} m"
    return f"{distance_m / 1000:.1f} km"


def format_facility_list(facilities: List[Facility]) -> str:
    """Numbered, plain-text facility list for the auto-reply email."""
    if not facilities:
        return "No nearby hospitals found."

    entries = []
    for index, facility in enumerate(facilities, start=1):
        lines = [f"{index}. {facility.name} ({format_distance(facility.distance_m)} away)"]
        lines.append(f"   {facility.address}")
        if facility.emergency_capable:
            lines.append("   Emergency services available")
        if facility.phone:
            lines.append(f"   Phone: {facility.phone}")
        if facility.is_approximate:
            lines.append("   (approximate location)")
        lines.append(f"   View on map: {facility.map_url}")
        entries.append("\n".join(lines))

    return "\n\n".join(entries)
