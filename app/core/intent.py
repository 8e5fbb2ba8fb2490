"""Intent tagging for customer and operator messages.

The orchestrator and the knowledge trainer depend only on the
``IntentClassifier`` protocol; ``KeywordIntentClassifier`` is the default
phrase-matching implementation.
"""

import re
from enum import Enum
from typing import Protocol


class IntentTag(str, Enum):
    DETAIL_REQUEST = "detail_request"
    SAVE_CONFIRMATION = "save_confirmation"
    OTHER = "other"


class IntentClassifier(Protocol):
    def classify(self, text: str) -> IntentTag: ...


# Customer asks for full details / features / what's included
DETAIL_KEYWORDS: tuple[str, ...] = (
    "дэлгэрэнгүй",
    "онцлог",
    "юу багтсан",
    "юу орсон",
    "тайлбар",
    "details",
    "detail",
    "features",
    "what's included",
    "what is included",
)

# Operator confirms the trainer should store the proposed knowledge
SAVE_CONFIRMATIONS: tuple[str, ...] = (
    "тийм",
    "хадгал",
    "за",
    "болно",
    "yes",
    "save",
    "ok",
)


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text.lower()).strip()


class KeywordIntentClassifier:
    """Substring matching for detail requests, whole-word matching for confirmations."""

    def __init__(
        self,
        detail_keywords: tuple[str, ...] = DETAIL_KEYWORDS,
        save_confirmations: tuple[str, ...] = SAVE_CONFIRMATIONS,
    ):
        self.detail_keywords = tuple(k.lower() for k in detail_keywords)
        self.save_confirmations = tuple(k.lower() for k in save_confirmations)

    def classify(self, text: str) -> IntentTag:
        normalized = _normalize(text or "")
        if not normalized:
            return IntentTag.OTHER

        if any(keyword in normalized for keyword in self.detail_keywords):
            return IntentTag.DETAIL_REQUEST

        # Short replies only: "за хадгал", "yes, save it"
        words = re.findall(r"\w+", normalized)
        if len(words) <= 4 and any(w in self.save_confirmations for w in words):
            return IntentTag.SAVE_CONFIRMATION

        return IntentTag.OTHER


default_classifier = KeywordIntentClassifier()
