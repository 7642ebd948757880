"""
Query Intent Classifier

Classifies search queries by user intent with an ordered list of pattern
rules. The first matching rule wins, so the order below is part of the
contract: problem solving, then investigational, transactional,
navigational and informational, then fallback heuristics. Many queries
match more than one category's surface patterns ("how to fix ...").

Fallbacks:
    Single word longer than 2 chars -> navigational / brand (0.4)
    Anything else                   -> informational (0.3)
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)


class QueryIntent(str, Enum):
    """Presumed purpose behind a search query."""
    INFORMATIONAL = "informational"
    TRANSACTIONAL = "transactional"
    NAVIGATIONAL = "navigational"
    INVESTIGATIONAL = "investigational"
    PROBLEM_SOLVING = "problem_solving"


@dataclass(frozen=True)
class ClassifiedQuery:
    """A query annotated with its intent."""
    query: str
    intent: QueryIntent
    confidence: float
    sub_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "intent": self.intent.value,
            "sub_type": self.sub_type,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ClassificationRule:
    """One entry of the decision list."""
    intent: QueryIntent
    sub_type: str
    pattern: Pattern[str]
    confidence: float


def _rule(intent: QueryIntent, sub_type: str, pattern: str, confidence: float) -> ClassificationRule:
    return ClassificationRule(intent, sub_type, re.compile(pattern), confidence)


_PS = QueryIntent.PROBLEM_SOLVING
_INV = QueryIntent.INVESTIGATIONAL
_TX = QueryIntent.TRANSACTIONAL
_NAV = QueryIntent.NAVIGATIONAL
_INFO = QueryIntent.INFORMATIONAL

# Evaluated top to bottom; first match wins.
CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    # Problem solving
    _rule(_PS, "troubleshoot", r"\b(troubleshoot|diagnose)\b", 0.9),
    _rule(_PS, "debug", r"\b(debug|debugging)\b", 0.9),
    _rule(_PS, "fix", r"\b(fix|repair|resolve)\b", 0.85),
    _rule(_PS, "error", r"\b(error|errors|exception|crash|crashed)\b", 0.85),
    _rule(_PS, "issue", r"\b(issue|issues|problem|problems)\b", 0.75),
    _rule(_PS, "fix", r"\bnot working\b", 0.9),
    _rule(_PS, "fix", r"\bsolve\b", 0.8),

    # Investigational
    _rule(_INV, "comparison", r"\b(vs\.?|versus|compared to|comparison)\b", 0.9),
    _rule(_INV, "alternative", r"\b(alternative|alternatives|instead of|similar to)\b", 0.85),
    _rule(_INV, "review", r"\b(review|reviews|rating|ratings)\b", 0.85),
    _rule(_INV, "best", r"\b(best|top\s+\d+|top\s+ten)\b", 0.8),
    _rule(_INV, "recommendation", r"\b(recommend|recommendation|suggestions?)\b", 0.8),

    # Transactional
    _rule(_TX, "purchase", r"\b(buy|purchase|order|add to cart)\b", 0.9),
    _rule(_TX, "pricing", r"\b(price|pricing|cost|how much)\b", 0.85),
    _rule(_TX, "deal", r"\b(cheap|deal|deals|discount|sale|coupon|promo|voucher)\b", 0.85),
    _rule(_TX, "shopping", r"\b(shop|shopping|store|checkout)\b", 0.8),
    _rule(_TX, "shipping", r"\b(free shipping|delivery|shipping)\b", 0.8),
    _rule(_TX, "subscription", r"\b(subscribe|subscription|plan|plans|tier)\b", 0.75),

    # Navigational
    _rule(_NAV, "login", r"\b(login|log in|sign in|signin|sign up|signup|register)\b", 0.9),
    _rule(_NAV, "account", r"\b(dashboard|account|my account|profile|settings)\b", 0.85),
    _rule(_NAV, "contact", r"\b(contact|support|help center|customer service)\b", 0.8),
    _rule(_NAV, "download", r"\b(download|install|app)\b", 0.7),

    # Informational
    _rule(_INFO, "how-to", r"^how (to|do|does|can|should)\b", 0.9),
    _rule(_INFO, "definition", r"^what (is|are|was|were|does)\b", 0.9),
    _rule(_INFO, "explanation", r"^why (is|are|do|does|did|would|should)\b", 0.9),
    _rule(_INFO, "temporal", r"^when (is|are|do|does|did|was|were|will)\b", 0.9),
    _rule(_INFO, "location", r"^where (is|are|do|does|can|to)\b", 0.9),
    _rule(_INFO, "identity", r"^who (is|are|was|were)\b", 0.9),
    _rule(_INFO, "guide", r"\b(guide|tutorial|walkthrough|step by step)\b", 0.85),
    _rule(_INFO, "learning", r"\b(learn|learning|understand|explained|explanation)\b", 0.8),
    _rule(_INFO, "definition", r"\b(meaning|definition|define|what does .+ mean)\b", 0.85),
    _rule(_INFO, "example", r"\b(example|examples|sample|template)\b", 0.75),
)

BRAND_CONFIDENCE = 0.4
DEFAULT_CONFIDENCE = 0.3


def classify_query(query: str) -> ClassifiedQuery:
    """
    Classify a single search query by intent.

    Args:
        query: Raw query string (preserved unchanged in the result)

    Returns:
        ClassifiedQuery. Never raises; unmatched queries fall back to the
        brand heuristic or low-confidence informational.
    """
    normalized = (query or "").lower().strip()

    for rule in CLASSIFICATION_RULES:
        if rule.pattern.search(normalized):
            return ClassifiedQuery(
                query=query,
                intent=rule.intent,
                sub_type=rule.sub_type,
                confidence=rule.confidence,
            )

    # Single-word queries without other signals are usually brand searches
    words = normalized.split()
    if len(words) == 1 and len(normalized) > 2:
        return ClassifiedQuery(
            query=query,
            intent=QueryIntent.NAVIGATIONAL,
            sub_type="brand",
            confidence=BRAND_CONFIDENCE,
        )

    return ClassifiedQuery(
        query=query,
        intent=QueryIntent.INFORMATIONAL,
        confidence=DEFAULT_CONFIDENCE,
    )


def classify_queries(queries: Iterable[str]) -> List[ClassifiedQuery]:
    """Classify many queries, preserving input order."""
    return [classify_query(q) for q in queries]


def get_intent_distribution(classified: Iterable[ClassifiedQuery]) -> Dict[str, int]:
    """
    Count classified queries per intent.

    Args:
        classified: Previously classified queries

    Returns:
        Dict with a counter for every intent (zero when absent)
    """
    distribution = {intent.value: 0 for intent in QueryIntent}
    for item in classified:
        distribution[item.intent.value] += 1
    return distribution
