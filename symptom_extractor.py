# symptom_extractor.py
# ------------------------------------------------------------
# Turns free text into a set of canonical symptom labels.
#
# Two passes over the same text, results unioned:
#   1. every vocabulary term found verbatim (case-insensitive)
#   2. noun/adjective runs from the tagger matched fuzzily:
#      term contains run OR run contains term
#
# Negation is not handled: "no fever" still yields "fever".
# ------------------------------------------------------------

import logging
from typing import FrozenSet, Iterable, Optional, Sequence

from language import tag_phrases
from vocabulary import COMMON_SYMPTOMS

logger = logging.getLogger(__name__)


def keyword_matches(text: str, vocabulary: Sequence[str] = COMMON_SYMPTOMS) -> FrozenSet[str]:
    """Vocabulary terms that appear anywhere in `text`."""
    lowered = text.lower()
    return frozenset(term for term in vocabulary if term in lowered)


def phrase_matches(
    phrases: Iterable[str],
    vocabulary: Sequence[str] = COMMON_SYMPTOMS,
) -> FrozenSet[str]:
    """Vocabulary terms that contain, or are contained by, a tagged phrase."""
    found = set()
    for phrase in phrases:
        candidate = phrase.strip().lower()
        if not candidate:
            continue
        for term in vocabulary:
            if candidate in term or term in candidate:
                found.add(term)
    return frozenset(found)


def extract_symptoms(text: str, phrases: Optional[Iterable[str]] = None) -> FrozenSet[str]:
    """
    Extract symptoms from normalized text.

    Args:
        text (str): Whitespace-collapsed report text.
        phrases: Pre-computed noun/adjective runs. Tagged with spaCy
            when omitted.

    Returns:
        A frozenset of labels from COMMON_SYMPTOMS; empty when
        nothing matches.
    """
    if not text:
        return frozenset()

    if phrases is None:
        phrases = tag_phrases(text)

    symptoms = keyword_matches(text) | phrase_matches(phrases)
    logger.debug("Symptoms found: %s", sorted(symptoms))
    return symptoms
