"""
Conversational memory and proactive engagement engine.

Per-user dialogue memory, emotion classification, behaviour-pattern mining,
proactive insights and follow-up rules for a shopping assistant.
"""

from vendor_memory.engagement.followup_rules import FollowUpRuleEngine
from vendor_memory.engagement.proactive_insights import ProactiveInsightGenerator
from vendor_memory.memory.conversation_memory import ConversationMemoryManager
from vendor_memory.personality.emotional_analyzer import EmotionalAnalyzer
from vendor_memory.pipeline.engagement_pipeline import EngagementPipeline, TurnSignals

__version__ = "0.1.0"

__all__ = [
    "ConversationMemoryManager",
    "EmotionalAnalyzer",
    "ProactiveInsightGenerator",
    "FollowUpRuleEngine",
    "EngagementPipeline",
    "TurnSignals",
]
