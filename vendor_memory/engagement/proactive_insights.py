"""
Proactive insights derived from a memory snapshot.

Every rule is evaluated independently; all that match are emitted, highest
priority first. Callers usually only surface ``select_high_priority``.
"""

from datetime import datetime
from typing import Optional

from loguru import logger

from vendor_memory.core.clock import Clock, system_clock, to_local_naive
from vendor_memory.core.models import ConversationMemory, InteractionType, ProactiveInsight

BUSINESS_HOURS = (9, 18)
LONG_SESSION_MINUTES = 10


def _has_pattern(memory: ConversationMemory, name: str) -> bool:
    return any(p.pattern == name for p in memory.long_term.behavior_patterns)


def _price_related_count(memory: ConversationMemory, window: int = 10) -> int:
    return sum(
        1
        for i in memory.short_term.last_interactions[:window]
        if i.type == InteractionType.PRICE_INQUIRY or "preço" in i.content.lower()
    )


def generate_proactive_insights(
    memory: ConversationMemory,
    now: Optional[datetime] = None,
) -> list[ProactiveInsight]:
    """
    Derive every applicable insight for ``memory``.

    Args:
        memory: Snapshot to inspect (not modified)
        now: Wall-clock time for the business-hours rule

    Returns:
        Insights sorted by priority, descending
    """
    now = to_local_naive(now) if now else datetime.now()
    insights: list[ProactiveInsight] = []

    if _has_pattern(memory, "repeated_search"):
        insights.append(ProactiveInsight(
            type="behavioral",
            insight="Usuário está repetindo buscas - pode estar indeciso",
            message="Notei que você está pesquisando bastante. Posso te ajudar a comparar opções e decidir?",
            confidence=0.8,
            actionable=True,
            suggested_actions=["offer_comparison", "simplify_options", "provide_recommendation"],
            priority=8,
        ))

    if _has_pattern(memory, "price_sensitive_abandonment"):
        insights.append(ProactiveInsight(
            type="behavioral",
            insight="Usuário abandona por preço - sensível a valores",
            message="Vi que você está de olho no preço. Posso te mostrar as melhores ofertas disponíveis?",
            confidence=0.75,
            actionable=True,
            suggested_actions=["show_best_deals", "compare_prices", "suggest_alternatives"],
            priority=9,
        ))

    if _price_related_count(memory) >= 2:
        insights.append(ProactiveInsight(
            type="contextual",
            insight="Múltiplas consultas de preço detectadas",
            message="Vejo que o preço é importante para você. Posso te ajudar a encontrar o melhor custo-benefício!",
            confidence=0.85,
            actionable=True,
            suggested_actions=["price_comparison", "show_discounts"],
            priority=8,
        ))

    start, end = BUSINESS_HOURS
    session_minutes = memory.long_term.user_profile.engagement.average_session_duration
    if start <= now.hour <= end and session_minutes > LONG_SESSION_MINUTES:
        insights.append(ProactiveInsight(
            type="temporal",
            insight="Sessão longa durante horário comercial",
            message="Está com tempo para explorar! Posso te mostrar algumas novidades que acabaram de chegar?",
            confidence=0.6,
            actionable=True,
            suggested_actions=["show_new_arrivals", "featured_products"],
            priority=5,
        ))

    return sorted(insights, key=lambda i: i.priority, reverse=True)


def select_high_priority(
    insights: list[ProactiveInsight],
    min_priority: int = 8,
    limit: int = 2,
) -> list[ProactiveInsight]:
    """Top ``limit`` insights at or above ``min_priority`` (input already sorted)."""
    return [i for i in insights if i.priority >= min_priority][:limit]


class ProactiveInsightGenerator:
    """Clock-bound wrapper around ``generate_proactive_insights``."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or system_clock
        logger.info("ProactiveInsightGenerator initialized")

    def generate(self, memory: ConversationMemory) -> list[ProactiveInsight]:
        insights = generate_proactive_insights(memory, now=self.clock())
        if insights:
            logger.debug(f"Generated {len(insights)} proactive insights")
        return insights
