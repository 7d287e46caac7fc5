"""
Attention window over what the conversation is currently about.

Each frame's relevance decays with age and with its rank in the stack:

    relevance_i = min(prior_i, exp(-age_minutes / 30) * exp(-0.2 * i))

Taking the min with the prior value means a frame never recovers, so
relevance is non-increasing between pushes. Frames at or below the floor are
dropped on every recompute. All functions here are pure: they take ``now``
and return new objects.
"""

import math
from datetime import datetime
from typing import Any
from uuid import uuid4

from vendor_memory.core.config import settings
from vendor_memory.core.models import ContextFrame, ContextStack, ContextType


def decayed_relevance(
    prior: float,
    age_minutes: float,
    rank: int,
    decay_minutes: float = settings.CONTEXT_DECAY_MINUTES,
    positional_decay: float = settings.CONTEXT_POSITIONAL_DECAY,
) -> float:
    """
    Relevance of a frame at ``rank`` that is ``age_minutes`` old.

    Negative ages (clock skew) are treated as zero.
    """
    temporal = math.exp(-max(age_minutes, 0.0) / decay_minutes)
    positional = math.exp(-rank * positional_decay)
    return min(prior, temporal * positional)


def recompute_relevance(
    frames: list[ContextFrame],
    now: datetime,
    decay_minutes: float = settings.CONTEXT_DECAY_MINUTES,
    positional_decay: float = settings.CONTEXT_POSITIONAL_DECAY,
    floor: float = settings.CONTEXT_RELEVANCE_FLOOR,
) -> list[ContextFrame]:
    """
    Decay every frame by age and current rank, drop weak ones, sort.

    Returns:
        New frames, relevance descending, all strictly above ``floor``
    """
    updated = []
    for rank, frame in enumerate(frames):
        age_minutes = (now - frame.timestamp).total_seconds() / 60.0
        relevance = decayed_relevance(
            frame.relevance, age_minutes, rank, decay_minutes, positional_decay
        )
        if relevance > floor:
            updated.append(frame.model_copy(update={"relevance": relevance}))

    # sorted() is stable, so equal relevance keeps newest-first order
    return sorted(updated, key=lambda f: f.relevance, reverse=True)


def new_frame(
    content: Any,
    frame_type: ContextType,
    now: datetime,
) -> ContextFrame:
    frame_type = ContextType(frame_type)
    return ContextFrame(
        id=f"{frame_type.value}_{int(now.timestamp() * 1000)}_{uuid4().hex[:6]}",
        type=frame_type,
        content=content,
        relevance=1.0,
        timestamp=now,
        relationships=[],
    )


def push_frame(
    stack: ContextStack,
    frame: ContextFrame,
    now: datetime,
    **decay_kwargs,
) -> ContextStack:
    """Put ``frame`` on top, cap the stack, then recompute relevance."""
    contexts = [frame] + list(stack.contexts)
    contexts = contexts[: stack.max_size]
    return stack.model_copy(
        update={
            "contexts": recompute_relevance(contexts, now, **decay_kwargs),
            "current_focus": frame.id,
        }
    )


def refresh(stack: ContextStack, now: datetime, **decay_kwargs) -> ContextStack:
    """Recompute relevance without pushing anything."""
    return stack.model_copy(
        update={"contexts": recompute_relevance(stack.contexts, now, **decay_kwargs)}
    )


def top_contexts(stack: ContextStack, limit: int = 5) -> list[ContextFrame]:
    if limit <= 0:
        return []
    return list(stack.contexts[:limit])
