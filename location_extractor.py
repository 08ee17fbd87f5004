# location_extractor.py
# ------------------------------------------------------------
# Picks the single best location phrase out of report text.
#
# Two phases:
#   1. recognize: ask the entity recognizer for place names
#   2. widen: if a location pattern span contains the first
#      recognized place, return that span instead (it is more
#      specific, e.g. a full street address)
#
# Without a recognized place the pattern cascade is used on its
# own and the first span longer than 2 characters wins.
# ------------------------------------------------------------

import logging
import re
from typing import Iterator, List, Optional, Sequence, Tuple

from language import recognize_places
from vocabulary import LOCATION_PATTERNS

logger = logging.getLogger(__name__)

# Trailing punctuation removed from every returned span.
_TRAILING_PUNCT = re.compile(r"[.,!?;:]+$")

MIN_LOCATION_LENGTH = 3


def clean_span(span: str) -> str:
    """Trim whitespace and trailing punctuation."""
    return _TRAILING_PUNCT.sub("", span.strip()).strip()


def match_patterns(
    text: str,
    patterns: Sequence[Tuple[str, re.Pattern]] = LOCATION_PATTERNS,
) -> Iterator[Tuple[str, str]]:
    """
    Yield (pattern name, cleaned span) for every pattern match,
    most specific pattern first, left to right within a pattern.
    """
    for name, pattern in patterns:
        for match in pattern.finditer(text):
            span = clean_span(match.group(1))
            if span:
                yield name, span


def widen_place(text: str, place: str) -> str:
    """Return the first pattern span containing `place`, else `place`."""
    needle = place.lower()
    for name, span in match_patterns(text):
        if needle in span.lower():
            logger.debug("Widened place %r to %s span %r", place, name, span)
            return span
    return place


def extract_location(text: str, places: Optional[List[str]] = None) -> Optional[str]:
    """
    Extract a location from normalized text.

    Args:
        text (str): Whitespace-collapsed report text.
        places: Pre-recognized place names. Run through spaCy when
            omitted.

    Returns:
        The location string, or None if nothing plausible was found.
    """
    if not text:
        return None

    if places is None:
        places = recognize_places(text)

    recognized = [clean_span(p) for p in places if clean_span(p)]
    if recognized:
        return widen_place(text, recognized[0])

    for name, span in match_patterns(text):
        if len(span) >= MIN_LOCATION_LENGTH:
            logger.debug("Location from %s pattern: %r", name, span)
            return span

    return None
