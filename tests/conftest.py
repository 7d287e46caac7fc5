"""Shared fixtures"""

from datetime import datetime

import pytest

from vendor_memory.core.clock import FrozenClock
from vendor_memory.engagement.followup_rules import FollowUpRuleEngine
from vendor_memory.memory.conversation_memory import ConversationMemoryManager
from vendor_memory.personality.emotional_analyzer import EmotionalAnalyzer


@pytest.fixture
def clock():
    """Monday 14:00, inside business hours"""
    return FrozenClock(datetime(2024, 6, 3, 14, 0, 0))


@pytest.fixture
def manager(clock):
    return ConversationMemoryManager(clock=clock)


@pytest.fixture(scope="session")
def analyzer():
    return EmotionalAnalyzer()


@pytest.fixture
def engine():
    return FollowUpRuleEngine()
