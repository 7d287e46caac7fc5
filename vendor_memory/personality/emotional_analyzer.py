"""
Classify the dominant emotion of a free-text message.

Matching is plain case-insensitive substring containment against a
Portuguese keyword lexicon: no tokenization, no stemming. The result is a
single ``EmotionalState`` that a prompt builder can use to steer tone.
"""

import random
import re
from typing import Optional, Union

from loguru import logger

from vendor_memory.core.models import EmotionalState, EmotionType, InteractionRecord
from vendor_memory.personality.lexicon import EmotionLexicon, load_lexicon

_UPPERCASE = re.compile(r"[A-Z]")


class EmotionalAnalyzer:
    """
    Lexicon-based emotion classifier.

    Scoring:
    - primary emotion = most keyword hits (ties: lexicon order)
    - intensity = 0.5 + intensifiers + exclamation density + shouting
    - confidence = 0.9 for a lone candidate, else dominance of the top two
    """

    NEUTRAL_INTENSITY = 0.3
    NEUTRAL_CONFIDENCE = 0.5

    def __init__(self, lexicon: Optional[EmotionLexicon] = None):
        self.lexicon = lexicon or load_lexicon()
        logger.info("EmotionalAnalyzer initialized")

    def analyze_emotion(self, message: str, context: Optional[str] = None) -> EmotionalState:
        """
        Classify ``message``.

        Args:
            message: Raw user text
            context: Optional label stored on the result

        Returns:
            EmotionalState; the fixed neutral state when nothing matches
        """
        if not message:
            return self.neutral_state()

        message_lower = message.lower()
        scores = []
        for emotion, keywords in self.lexicon.emotions.items():
            hits = sum(1 for kw in keywords if kw in message_lower)
            if hits:
                scores.append((emotion, hits))

        if not scores:
            return self.neutral_state()

        # Stable sort keeps lexicon order among equal scores
        scores.sort(key=lambda s: s[1], reverse=True)
        primary = scores[0][0]

        state = EmotionalState(
            primary=primary,
            intensity=self._calculate_intensity(message),
            confidence=self._calculate_confidence([s for _, s in scores]),
            triggers=self._identify_triggers(message_lower),
            context=context or "general conversation",
        )
        logger.debug(
            f"Emotion '{primary.value}' "
            f"(intensity: {state.intensity:.2f}, confidence: {state.confidence:.2f})"
        )
        return state

    def neutral_state(self) -> EmotionalState:
        return EmotionalState(
            primary=EmotionType.NEUTRAL,
            intensity=self.NEUTRAL_INTENSITY,
            confidence=self.NEUTRAL_CONFIDENCE,
            triggers=[],
            context="neutral interaction",
        )

    def suggest_response(
        self,
        state: EmotionalState,
        seed: Optional[Union[int, str]] = None,
    ) -> str:
        """
        Pick an empathetic opener for ``state``.

        High-intensity states always get the first (most direct) phrase.
        Otherwise the phrase is drawn from a generator seeded with ``seed``,
        so the same seed always yields the same choice.
        """
        responses = self.lexicon.responses
        phrases = responses.get(state.primary) or responses[EmotionType.NEUTRAL]

        if state.intensity > 0.7:
            return phrases[0]

        rng = random.Random(seed if seed is not None else state.primary.value)
        return phrases[rng.randrange(len(phrases))]

    def detect_emotional_shift(self, previous: EmotionalState, current: EmotionalState) -> bool:
        """True when the mood crosses between the positive and negative sets."""
        positive = set(self.lexicon.positive)
        negative = set(self.lexicon.negative)

        was_positive = previous.primary in positive
        was_negative = previous.primary in negative
        is_positive = current.primary in positive
        is_negative = current.primary in negative

        return (was_positive and is_negative) or (was_negative and is_positive)

    def track_emotional_journey(
        self,
        interactions: list[InteractionRecord],
        limit: int = 10,
    ) -> list[EmotionalState]:
        """Sentiments of the most recent interactions that carry one."""
        return [i.sentiment for i in interactions if i.sentiment is not None][:limit]

    def _calculate_intensity(self, message: str) -> float:
        message_lower = message.lower()
        intensity = 0.5

        # "!!" is a substring of "!!!", so both count on a triple bang
        for intensifier in self.lexicon.intensifiers:
            if intensifier in message_lower:
                intensity += 0.2

        intensity += min(message.count("!") * 0.1, 0.3)

        caps_ratio = len(_UPPERCASE.findall(message)) / len(message)
        if caps_ratio > 0.3:
            intensity += 0.2

        return max(0.0, min(intensity, 1.0))

    def _calculate_confidence(self, scores: list[int]) -> float:
        """``scores`` sorted descending, one per matched emotion."""
        if len(scores) == 1:
            return 0.9

        top, second = scores[0], scores[1]
        return 0.5 + 0.4 * (top / (top + second))

    def _identify_triggers(self, message_lower: str) -> list[str]:
        return [
            trigger
            for trigger, keywords in self.lexicon.triggers.items()
            if any(kw in message_lower for kw in keywords)
        ]
