"""Proactive insights and follow-up rules"""

from vendor_memory.engagement.followup_rules import FollowUpRuleEngine, load_rules
from vendor_memory.engagement.proactive_insights import (
    ProactiveInsightGenerator,
    generate_proactive_insights,
    select_high_priority,
)

__all__ = [
    "FollowUpRuleEngine",
    "load_rules",
    "ProactiveInsightGenerator",
    "generate_proactive_insights",
    "select_high_priority",
]
