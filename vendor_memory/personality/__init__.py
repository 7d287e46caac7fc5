"""Emotion classification"""

from vendor_memory.personality.emotional_analyzer import EmotionalAnalyzer
from vendor_memory.personality.lexicon import EmotionLexicon, load_lexicon

__all__ = ["EmotionalAnalyzer", "EmotionLexicon", "load_lexicon"]
