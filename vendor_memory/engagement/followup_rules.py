"""
Condition-triggered follow-up messages.

Rules live in a JSON table (``data/followup_rules.json`` by default). Each
rule's trigger is a list of conditions, or nested AND/OR groups of them,
evaluated against a small view of the user's memory:

    {
        "lastInteraction": <most recent InteractionRecord>,
        "recentProducts": [...],
        "emotionalState": <lastInteraction.sentiment>,
        "userProfile": <UserProfile>,
    }

Field paths are dotted camelCase (``lastInteraction.type``,
``recentProducts.length``). A path that does not resolve yields None and the
condition is simply false.
"""

import json
from pathlib import Path
from typing import Any, Callable, Optional, Union

from loguru import logger

from vendor_memory.core.config import settings
from vendor_memory.core.models import (
    ConditionGroup,
    ConditionOperator,
    ConversationMemory,
    FollowUpCondition,
    FollowUpRule,
)

ConditionNode = Union[FollowUpCondition, ConditionGroup]


def _format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


def _resolve_path(root: Any, path: str) -> Any:
    current = root
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, (list, tuple, str)):
            if part == "length":
                current = len(current)
            elif part.lstrip("-").isdigit() and -len(current) <= int(part) < len(current):
                current = current[int(part)]
            else:
                return None
        else:
            return None
    return current


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class FollowUpRuleEngine:
    """
    Evaluate follow-up rules and render their messages.

    Features:
    - AND/OR triggers, nested condition groups
    - Optional weighted threshold per trigger (uses condition weights)
    - Template personalization with a fixed set of placeholders
    - Runtime enable/disable of individual rules
    """

    def __init__(
        self,
        rules: Optional[list[FollowUpRule]] = None,
        currency_label: str = settings.CURRENCY_LABEL,
    ):
        self.currency_label = currency_label
        self._resolvers: dict[str, Callable[[ConversationMemory], str]] = {
            "product": self._product,
            "category": self._category,
            "priceRange": self._price_range,
            "products": self._products,
        }
        self.rules: list[FollowUpRule] = []
        for rule in rules if rules is not None else load_rules():
            self.register_rule(rule)
        logger.info(f"FollowUpRuleEngine initialized with {len(self.rules)} rules")

    # ========== RULE TABLE ==========

    def register_rule(self, rule: FollowUpRule) -> None:
        """
        Add ``rule`` to the table.

        Raises:
            ValueError: duplicate id or a placeholder with no resolver
        """
        if any(r.id == rule.id for r in self.rules):
            raise ValueError(f"Duplicate follow-up rule id: {rule.id}")

        unknown = [p for p in rule.message.personalization if p not in self._resolvers]
        if unknown:
            raise ValueError(f"Rule {rule.id} uses unknown placeholders: {unknown}")

        self.rules.append(rule)

    def get_rule(self, rule_id: str) -> Optional[FollowUpRule]:
        return next((r for r in self.rules if r.id == rule_id), None)

    def get_active_rules(self) -> list[FollowUpRule]:
        return [r for r in self.rules if r.active]

    def enable_rule(self, rule_id: str) -> bool:
        return self._set_active(rule_id, True)

    def disable_rule(self, rule_id: str) -> bool:
        return self._set_active(rule_id, False)

    def _set_active(self, rule_id: str, active: bool) -> bool:
        rule = self.get_rule(rule_id)
        if rule is None:
            logger.debug(f"No follow-up rule '{rule_id}'")
            return False
        rule.active = active
        return True

    # ========== EVALUATION ==========

    def evaluate_rules(self, memory: ConversationMemory) -> list[FollowUpRule]:
        """Active rules whose trigger holds, highest priority first."""
        view = self.build_view(memory)
        triggered = [
            rule for rule in self.rules
            if rule.active and self._evaluate_group(
                rule.trigger.conditions, rule.trigger.operator, rule.trigger.threshold, view
            )
        ]
        return sorted(triggered, key=lambda r: r.priority, reverse=True)

    @staticmethod
    def build_view(memory: ConversationMemory) -> dict[str, Any]:
        interactions = memory.short_term.last_interactions
        last = interactions[0] if interactions else None
        return {
            "lastInteraction": last.model_dump(by_alias=True) if last else None,
            "recentProducts": list(memory.short_term.recent_products),
            "emotionalState": (
                last.sentiment.model_dump(by_alias=True)
                if last is not None and last.sentiment is not None
                else None
            ),
            "userProfile": memory.long_term.user_profile.model_dump(by_alias=True),
        }

    def get_field_value(self, field: str, memory: ConversationMemory) -> Any:
        return _resolve_path(self.build_view(memory), field)

    def _evaluate_group(
        self,
        nodes: list[ConditionNode],
        operator: str,
        threshold: Optional[float],
        view: dict[str, Any],
    ) -> bool:
        results = [(node.weight, self._evaluate_node(node, view)) for node in nodes]

        if threshold is not None:
            total = sum(weight for weight, _ in results)
            if total <= 0:
                return False
            satisfied = sum(weight for weight, ok in results if ok)
            return satisfied / total >= threshold

        if operator == "AND":
            return all(ok for _, ok in results)
        return any(ok for _, ok in results)

    def _evaluate_node(self, node: ConditionNode, view: dict[str, Any]) -> bool:
        if isinstance(node, ConditionGroup):
            return self._evaluate_group(node.conditions, node.operator, None, view)
        return self._evaluate_condition(node, view)

    def _evaluate_condition(self, condition: FollowUpCondition, view: dict[str, Any]) -> bool:
        value = _resolve_path(view, condition.field)
        expected = condition.value
        op = condition.operator

        if op == ConditionOperator.EQUALS:
            return value is not None and value == expected
        if op == ConditionOperator.CONTAINS:
            return isinstance(value, (list, tuple)) and expected in value
        if op == ConditionOperator.GREATER:
            return _is_number(value) and _is_number(expected) and value > expected
        if op == ConditionOperator.LESS:
            return _is_number(value) and _is_number(expected) and value < expected
        if op == ConditionOperator.EXISTS:
            return value is not None
        if op == ConditionOperator.NOT_EXISTS:
            return value is None
        return False

    # ========== MESSAGES ==========

    def generate_message(self, rule: FollowUpRule, memory: ConversationMemory) -> str:
        """
        Fill ``rule``'s template for this user.

        Only placeholders listed in the rule's personalization are replaced;
        anything else in braces is left as written.
        """
        message = rule.message.template
        for placeholder in rule.message.personalization:
            resolver = self._resolvers.get(placeholder)
            if resolver is None:
                continue
            message = message.replace(f"{{{placeholder}}}", resolver(memory))
        return message

    def _product(self, memory: ConversationMemory) -> str:
        products = memory.short_term.recent_products
        return products[0] if products else "este produto"

    def _category(self, memory: ConversationMemory) -> str:
        return memory.short_term.current_context or "produtos"

    def _price_range(self, memory: ConversationMemory) -> str:
        price_range = memory.long_term.preferences.price_range
        return (
            f"entre {_format_amount(price_range.min)} e "
            f"{_format_amount(price_range.max)} {self.currency_label}"
        )

    def _products(self, memory: ConversationMemory) -> str:
        return ", ".join(memory.short_term.recent_products[:3])


def load_rules(path: Optional[Union[Path, str]] = None) -> list[FollowUpRule]:
    """
    Read and validate a follow-up rule table.

    Raises:
        FileNotFoundError: the file does not exist
        pydantic.ValidationError: a rule is malformed
    """
    path = Path(path) if path else settings.rules_file
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    rules = [FollowUpRule.model_validate(item) for item in raw]
    logger.debug(f"Loaded {len(rules)} follow-up rules from {path}")
    return rules
