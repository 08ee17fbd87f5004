# ------------------------------------------------------------
# language.py
#
# Thin wrapper around spaCy used by the extractors.
#
# It:
#   - loads the configured spaCy pipeline once per process
#   - falls back to a blank English pipeline when the model
#     package is not installed (keyword matching still works)
#   - returns noun and adjective runs for fuzzy symptom matching
#   - returns place names recognized by the entity recognizer
# ------------------------------------------------------------

import logging
import os
from functools import lru_cache
from typing import List, Tuple

import spacy
from dotenv import load_dotenv
from spacy.language import Language

load_dotenv()

logger = logging.getLogger(__name__)

# Tagger + NER pipeline. Not pulled in by pip; install it with:
#   python -m spacy download en_core_web_sm
# Without it the blank fallback skips phrase tagging and place recognition.
SPACY_MODEL = os.environ.get("SPACY_MODEL", "en_core_web_sm")

# Coarse tags grouped into one run, mirroring "#Noun+" / "#Adjective+".
NOUN_TAGS = frozenset({"NOUN", "PROPN"})
ADJECTIVE_TAGS = frozenset({"ADJ"})

# Entity labels treated as places.
PLACE_LABELS = frozenset({"GPE", "LOC", "FAC"})


@lru_cache(maxsize=1)
def get_nlp() -> Language:
    """Load the spaCy pipeline, or a blank English one if it is missing."""
    try:
        nlp = spacy.load(SPACY_MODEL)
        logger.info("Loaded spaCy model: %s", SPACY_MODEL)
    except OSError:
        logger.warning(
            "spaCy model %s not found, using blank English pipeline. "
            "Run: python -m spacy download %s",
            SPACY_MODEL,
            SPACY_MODEL,
        )
        nlp = spacy.blank("en")
    return nlp


def _runs(doc, tags) -> List[str]:
    """Join consecutive tokens whose coarse tag is in `tags`."""
    runs: List[str] = []
    current: List[str] = []
    for token in doc:
        if token.pos_ in tags:
            current.append(token.text)
            continue
        if current:
            runs.append(" ".join(current))
            current = []
    if current:
        runs.append(" ".join(current))
    return runs


def _phrases(doc) -> List[str]:
    return _runs(doc, NOUN_TAGS) + _runs(doc, ADJECTIVE_TAGS)


def _places(doc) -> List[str]:
    return [ent.text for ent in doc.ents if ent.label_ in PLACE_LABELS]


def tag_phrases(text: str) -> List[str]:
    """
    Noun runs followed by adjective runs found in `text`.

    A blank pipeline assigns no tags, so it yields an empty list.
    """
    return _phrases(get_nlp()(text))


def recognize_places(text: str) -> List[str]:
    """Place names found by the entity recognizer, in document order."""
    return _places(get_nlp()(text))


def analyze(text: str) -> Tuple[List[str], List[str]]:
    """Tagged phrases and place names from a single pipeline run."""
    doc = get_nlp()(text)
    return _phrases(doc), _places(doc)
