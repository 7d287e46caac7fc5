"""Core data models and configuration"""

from vendor_memory.core.models import (
    BehaviorPattern,
    ContextFrame,
    ContextType,
    ConversationMemory,
    EmotionalState,
    EmotionType,
    FollowUpRule,
    InteractionRecord,
    InteractionType,
    ProactiveInsight,
)
from vendor_memory.core.config import settings

__all__ = [
    "BehaviorPattern",
    "ContextFrame",
    "ContextType",
    "ConversationMemory",
    "EmotionalState",
    "EmotionType",
    "FollowUpRule",
    "InteractionRecord",
    "InteractionType",
    "ProactiveInsight",
    "settings",
]
