"""Small helpers shared by the prompt builder and the engagement pipeline"""

import json
import re
from datetime import datetime
from typing import Any

from vendor_memory.core.clock import to_local_naive
from vendor_memory.core.models import ConversationMemory

# First match wins, so order matters
INTENT_PATTERNS = [
    ("price_inquiry", re.compile(r"quanto|preço|custo|valor|custa")),
    ("purchase_intent", re.compile(r"comprar|quero|vou levar|levo")),
    ("comparison", re.compile(r"comparar|diferença|melhor|versus|vs")),
    ("search", re.compile(r"procuro|busco|preciso|quero ver|tem")),
    ("information", re.compile(r"como|funciona|especificações|detalhes|características")),
    ("help", re.compile(r"ajuda|dúvida|não entendi|explica")),
]


def extract_intent(message: str) -> str:
    """Coarse intent label for ``message``; 'general' when nothing matches."""
    message_lower = message.lower()
    for intent, pattern in INTENT_PATTERNS:
        if pattern.search(message_lower):
            return intent
    return "general"


def summarize_context(memory: ConversationMemory, max_length: int = 500) -> str:
    """One-line summary of current topic, recent products and last action."""
    short_term = memory.short_term
    parts = []

    if short_term.current_context:
        parts.append(f"Contexto: {short_term.current_context}. ")

    recent = short_term.recent_products[:3]
    if recent:
        parts.append(f"Produtos vistos: {', '.join(recent)}. ")

    if short_term.last_interactions:
        last = short_term.last_interactions[0]
        parts.append(f"Última ação: {last.type.value} - {last.content}")

    summary = "".join(parts)
    if len(summary) > max_length:
        summary = summary[: max_length - 3] + "..."
    return summary


def calculate_engagement_score(memory: ConversationMemory) -> float:
    """
    Engagement in [0, 1].

    30% sessions (saturating at 10), 30% average session length (saturating
    at 20 minutes), 40% purchases (saturating at 5).
    """
    engagement = memory.long_term.user_profile.engagement

    session_score = min(engagement.total_sessions / 10, 1) * 0.3
    duration_score = min(engagement.average_session_duration / 20, 1) * 0.3
    purchase_score = min(engagement.total_purchases / 5, 1) * 0.4
    return session_score + duration_score + purchase_score


def should_trigger_proactive_message(memory: ConversationMemory, now: datetime) -> bool:
    """
    True when the user went quiet 5-30 minutes ago with products in view.
    """
    interactions = memory.short_term.last_interactions
    if not interactions:
        return False

    minutes_since = (to_local_naive(now) - interactions[0].timestamp).total_seconds() / 60
    if 5 < minutes_since < 30:
        return len(memory.short_term.recent_products) > 0
    return False


def merge_contexts(contexts: list[Any]) -> str:
    """Join distinct contexts with ' | ', keeping first-seen order."""
    seen: dict[str, None] = {}
    for ctx in contexts:
        key = ctx if isinstance(ctx, str) else json.dumps(ctx, sort_keys=True, default=str)
        seen.setdefault(key, None)
    return " | ".join(seen)
