"""
Recurring-behaviour mining over recent interactions.

Two fixed signatures are checked on every interaction:

- repeated_search: the three most recent queries collapse to at most two
  distinct (lowercased) strings
- price_sensitive_abandonment: a product click, an abandonment and a price
  remark all appear in the window

Confidence grows by a fixed step each time a pattern is detected again, so it
measures how often a pattern was seen rather than how strong the evidence was.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from loguru import logger

from vendor_memory.core.clock import to_local_naive
from vendor_memory.core.models import BehaviorPattern, InteractionRecord, InteractionType

PRICE_KEYWORDS = ("preço", "caro", "barato")


def detect_repeated_search(interactions: list[InteractionRecord]) -> bool:
    searches = [i for i in interactions if i.type == InteractionType.QUERY]
    if len(searches) < 3:
        return False

    terms = {s.content.lower() for s in searches[:3]}
    return len(terms) <= 2


def detect_price_abandonment(interactions: list[InteractionRecord]) -> bool:
    has_product_view = any(i.type == InteractionType.CLICK for i in interactions)
    has_abandonment = any(i.type == InteractionType.ABANDON for i in interactions)
    has_price_context = any(
        any(kw in i.content.lower() for kw in PRICE_KEYWORDS)
        for i in interactions
    )
    return has_product_view and has_abandonment and has_price_context


@dataclass(frozen=True)
class PatternSignature:
    name: str
    detector: Callable[[list[InteractionRecord]], bool]
    initial_confidence: float
    outcomes: tuple[str, ...]


SIGNATURES = (
    PatternSignature(
        name="repeated_search",
        detector=detect_repeated_search,
        initial_confidence=0.8,
        outcomes=("indecision", "need_guidance"),
    ),
    PatternSignature(
        name="price_sensitive_abandonment",
        detector=detect_price_abandonment,
        initial_confidence=0.7,
        outcomes=("price_comparison_needed", "discount_opportunity"),
    ),
)


def mine_patterns(
    recent: list[InteractionRecord],
    trigger: InteractionRecord,
    now: datetime,
) -> list[BehaviorPattern]:
    """
    Run every signature over ``recent``.

    Returns:
        Fresh pattern candidates (frequency 1) for each signature that matched
    """
    found = []
    for signature in SIGNATURES:
        if signature.detector(recent):
            found.append(
                BehaviorPattern(
                    pattern=signature.name,
                    frequency=1,
                    context=[trigger.content],
                    outcomes=list(signature.outcomes),
                    confidence=signature.initial_confidence,
                    last_observed=now,
                )
            )
    return found


def upsert_pattern(
    patterns: list[BehaviorPattern],
    candidate: BehaviorPattern,
    reinforcement: float = 0.1,
    max_patterns: int = 20,
) -> list[BehaviorPattern]:
    """
    Merge ``candidate`` into ``patterns`` by pattern name.

    An existing pattern is reinforced: frequency +1, confidence + step
    (capped at 1.0), timestamp refreshed. A new one is appended as given.
    When the list outgrows ``max_patterns`` the weakest, stalest entries go.
    """
    merged = list(patterns)
    for idx, existing in enumerate(merged):
        if existing.pattern == candidate.pattern:
            merged[idx] = existing.model_copy(
                update={
                    "frequency": existing.frequency + 1,
                    "last_observed": candidate.last_observed,
                    "confidence": min(1.0, existing.confidence + reinforcement),
                }
            )
            logger.debug(
                f"Reinforced pattern '{candidate.pattern}' "
                f"(confidence: {merged[idx].confidence:.2f})"
            )
            return merged

    merged.append(candidate)
    logger.debug(f"New behaviour pattern '{candidate.pattern}'")

    if len(merged) > max_patterns:
        merged.sort(key=lambda p: (p.confidence, p.last_observed), reverse=True)
        merged = merged[:max_patterns]
    return merged


def prune_patterns(
    patterns: list[BehaviorPattern],
    now: datetime,
    min_confidence: float = 0.3,
    max_age: timedelta = timedelta(days=7),
) -> list[BehaviorPattern]:
    """Keep patterns above ``min_confidence`` observed within ``max_age``."""
    now = to_local_naive(now)
    return [
        p for p in patterns
        if p.confidence > min_confidence and (now - p.last_observed) < max_age
    ]
