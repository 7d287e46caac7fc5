"""
Per-message engagement flow.

analyze emotion → record interaction → update context → derive insights and
follow-ups. The result is a structured bundle for an external prompt
builder; nothing here talks to a model or a delivery channel.
"""

from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, Field

from vendor_memory.core.clock import Clock
from vendor_memory.core.models import (
    ContextFrame,
    ContextType,
    EmotionalState,
    InteractionRecord,
    InteractionType,
    ProactiveInsight,
)
from vendor_memory.engagement.followup_rules import FollowUpRuleEngine
from vendor_memory.engagement.helpers import extract_intent
from vendor_memory.engagement.proactive_insights import (
    ProactiveInsightGenerator,
    select_high_priority,
)
from vendor_memory.memory.conversation_memory import ConversationMemoryManager
from vendor_memory.personality.emotional_analyzer import EmotionalAnalyzer


class FollowUpSuggestion(BaseModel):
    rule_id: str
    priority: int
    message: str


class TurnSignals(BaseModel):
    """Everything the prompt builder needs about one user turn"""

    user_id: str
    intent: str
    emotional_state: EmotionalState
    emotional_shift: bool = False
    suggested_response: str
    insights: list[ProactiveInsight] = Field(default_factory=list)
    follow_ups: list[FollowUpSuggestion] = Field(default_factory=list)
    relevant_contexts: list[ContextFrame] = Field(default_factory=list)


class EngagementPipeline:
    """
    Wires the analyzer, memory manager, insight generator and rule engine.

    Components are shared across users; per-user state lives in the
    manager's store.
    """

    def __init__(
        self,
        memory_manager: Optional[ConversationMemoryManager] = None,
        analyzer: Optional[EmotionalAnalyzer] = None,
        insight_generator: Optional[ProactiveInsightGenerator] = None,
        rule_engine: Optional[FollowUpRuleEngine] = None,
        clock: Optional[Clock] = None,
    ):
        self.memory = memory_manager or ConversationMemoryManager(clock=clock)
        self.clock = clock or self.memory.clock
        self.analyzer = analyzer or EmotionalAnalyzer()
        self.insights = insight_generator or ProactiveInsightGenerator(clock=self.clock)
        self.rules = rule_engine or FollowUpRuleEngine()
        logger.info("EngagementPipeline initialized")

    def process_message(
        self,
        user_id: str,
        message: str,
        interaction_type: InteractionType = InteractionType.MESSAGE,
        context: Any = None,
        product_ids: Optional[list[str]] = None,
        topic: Optional[str] = None,
        topic_type: ContextType = ContextType.PRODUCT,
        session_id: Optional[str] = None,
    ) -> TurnSignals:
        """
        Run one inbound message through the engine.

        Args:
            user_id: User identifier
            message: Raw message text
            interaction_type: How the message should be recorded
            context: Opaque caller context stored on the interaction
            product_ids: Products shown in this turn, most relevant first
            topic: Current topic to push on the context stack
            topic_type: Kind of topic
            session_id: Caller's session id, stored on the interaction

        Returns:
            TurnSignals for the prompt builder
        """
        history = self.memory.get_memory(user_id).short_term.last_interactions
        previous = history[0].sentiment if history else None

        emotion = self.analyzer.analyze_emotion(message)
        shift = previous is not None and self.analyzer.detect_emotional_shift(previous, emotion)
        if shift:
            logger.info(f"Emotional shift for {user_id}: {previous.primary.value} -> {emotion.primary.value}")

        self.memory.add_interaction(user_id, InteractionRecord(
            timestamp=self.clock(),
            type=interaction_type,
            content=message,
            context=context,
            sentiment=emotion,
            user_id=user_id,
            session_id=session_id,
        ))
        for product_id in reversed(product_ids or []):
            self.memory.add_recent_product(user_id, product_id)
        if topic:
            self.memory.update_current_context(user_id, topic, topic_type)

        memory = self.memory.get_memory(user_id)
        turn = len(memory.short_term.last_interactions)

        follow_ups = [
            FollowUpSuggestion(
                rule_id=rule.id,
                priority=rule.priority,
                message=self.rules.generate_message(rule, memory),
            )
            for rule in self.rules.evaluate_rules(memory)
        ]

        return TurnSignals(
            user_id=user_id,
            intent=extract_intent(message),
            emotional_state=emotion,
            emotional_shift=shift,
            suggested_response=self.analyzer.suggest_response(emotion, seed=f"{user_id}:{turn}"),
            insights=select_high_priority(self.insights.generate(memory)),
            follow_ups=follow_ups,
            relevant_contexts=self.memory.get_relevant_contexts(user_id),
        )
