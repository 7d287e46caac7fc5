"""
Per-user conversation memory.

The manager is the only read/write surface over a user's short- and
long-term memory, context stack and last search focus. Every public method
is total: an unknown user id is initialized on the fly instead of failing.
"""

from datetime import datetime, timedelta
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel

from vendor_memory.core.clock import Clock, system_clock, to_local_naive
from vendor_memory.core.config import Settings, settings as default_settings
from vendor_memory.core.models import (
    BehaviorPattern,
    ContextFrame,
    ContextStack,
    ContextType,
    ConversationalContext,
    ConversationMemory,
    Demographics,
    InteractionRecord,
    LongTermMemory,
    PriceRange,
    PurchaseRecord,
    UserPreferences,
    UserProfile,
    UserState,
)
from vendor_memory.memory import behavior_patterns, context_stack
from vendor_memory.storage.memory_store import InMemoryStore, MemoryStore


class ConversationMemoryManager:
    """
    Owns every user's ``ConversationMemory``.

    Features:
    - Lazy initialization on first access
    - Bounded short-term lists (interactions, recent products)
    - Relevance-decaying context stack
    - Behaviour-pattern mining on every recorded interaction
    - Periodic cleanup, including eviction of idle users
    """

    def __init__(
        self,
        store: Optional[MemoryStore] = None,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
    ):
        self.store = store if store is not None else InMemoryStore()
        self.clock = clock or system_clock
        self.config = config or default_settings
        logger.info("ConversationMemoryManager initialized")

    # ========== LIFECYCLE ==========

    def initialize_memory(self, user_id: str) -> ConversationMemory:
        """
        Build fresh memory for ``user_id``.

        Calling this for a user that already has memory resets it.
        """
        if self.store.get(user_id) is not None:
            logger.warning(f"Resetting existing memory for {user_id}")

        now = self.clock()
        memory = ConversationMemory(
            long_term=LongTermMemory(
                user_profile=self._default_profile(user_id),
                preferences=UserPreferences(
                    price_range=PriceRange(
                        min=0.0,
                        max=self.config.DEFAULT_PRICE_MAX,
                        flexibility=self.config.DEFAULT_PRICE_FLEXIBILITY,
                    )
                ),
            ),
            updated_at=now,
        )
        state = UserState(
            memory=memory,
            context_stack=ContextStack(max_size=self.config.CONTEXT_STACK_SIZE),
        )
        self.store.set(user_id, state)
        logger.debug(f"Initialized memory for {user_id}")
        return memory

    def get_memory(self, user_id: str) -> ConversationMemory:
        return self._state(user_id).memory

    def clear_memory(self, user_id: str) -> bool:
        removed = self.store.delete(user_id)
        if removed:
            logger.info(f"Cleared memory for {user_id}")
        return removed

    def get_active_users(self) -> list[str]:
        return self.store.keys()

    # ========== SHORT-TERM MEMORY ==========

    def update_current_context(
        self,
        user_id: str,
        context: str,
        context_type: ContextType = ContextType.PRODUCT,
    ) -> ContextFrame:
        """Set the current topic and push it onto the context stack."""
        state = self._state(user_id)
        now = self.clock()

        state.memory.short_term.current_context = context
        frame = context_stack.new_frame(context, context_type, now)
        state.context_stack = context_stack.push_frame(
            state.context_stack, frame, now, **self._decay_params()
        )
        self._save(user_id, state, now)
        return frame

    def add_interaction(self, user_id: str, interaction: InteractionRecord) -> None:
        """Record ``interaction`` (most recent first) and mine patterns."""
        state = self._state(user_id)
        now = self.clock()
        short_term = state.memory.short_term

        interactions = [interaction] + short_term.last_interactions
        short_term.last_interactions = interactions[: self.config.MAX_INTERACTIONS]

        self._analyze_behavior_patterns(state.memory, interaction, now)
        self._save(user_id, state, now)

    def add_recent_product(self, user_id: str, product_id: str) -> None:
        state = self._state(user_id)
        short_term = state.memory.short_term

        products = [p for p in short_term.recent_products if p != product_id]
        products.insert(0, product_id)
        short_term.recent_products = products[: self.config.MAX_RECENT_PRODUCTS]
        self._save(user_id, state)

    def add_session_goal(self, user_id: str, goal: str) -> None:
        state = self._state(user_id)
        goals = state.memory.short_term.session_goals
        if goal not in goals:
            goals.append(goal)
        self._save(user_id, state)

    # ========== CONTEXT STACK ==========

    def get_relevant_contexts(self, user_id: str, limit: int = 5) -> list[ContextFrame]:
        """Decay the stack to now and return the ``limit`` most relevant frames."""
        state = self._state(user_id)
        state.context_stack = context_stack.refresh(
            state.context_stack, self.clock(), **self._decay_params()
        )
        self.store.set(user_id, state)
        return context_stack.top_contexts(state.context_stack, limit)

    def get_context_stack(self, user_id: str) -> ContextStack:
        return self._state(user_id).context_stack

    def save_conversational_context(self, user_id: str, **fields: Any) -> ConversationalContext:
        """
        Merge the latest search focus into the stored one.

        Fields left out (or passed as None) keep their previous value.

        Args:
            user_id: User identifier
            **fields: focus, brand, category, last_query, last_models,
                products_found

        Returns:
            The merged context, timestamped now
        """
        state = self._state(user_id)
        now = self.clock()
        existing = state.conversational_context

        merged: dict[str, Any] = existing.model_dump() if existing else {}
        merged.update({k: v for k, v in fields.items() if v is not None})
        merged["timestamp"] = now

        state.conversational_context = ConversationalContext(**merged)
        self._save(user_id, state, now)

        logger.debug(
            f"Saved conversational context for {user_id}: "
            f"focus={state.conversational_context.focus} "
            f"category={state.conversational_context.category}"
        )
        return state.conversational_context

    def get_conversational_context(self, user_id: str) -> Optional[ConversationalContext]:
        """Last search focus, or None if absent or older than the TTL."""
        state = self.store.get(user_id)
        if state is None or state.conversational_context is None:
            return None

        if self._context_expired(state.conversational_context, self.clock()):
            logger.debug(f"Conversational context expired for {user_id}")
            state.conversational_context = None
            self.store.set(user_id, state)
            return None

        return state.conversational_context

    # ========== LONG-TERM MEMORY ==========

    def update_behavior_patterns(
        self,
        user_id: str,
        pattern: str,
        frequency: int = 1,
        confidence: float = 0.8,
        last_observed: Optional[datetime] = None,
    ) -> BehaviorPattern:
        """Upsert a pattern detected outside the built-in signatures."""
        state = self._state(user_id)
        now = self.clock()
        candidate = BehaviorPattern(
            pattern=pattern,
            frequency=frequency,
            confidence=confidence,
            last_observed=last_observed or now,
        )
        long_term = state.memory.long_term
        long_term.behavior_patterns = behavior_patterns.upsert_pattern(
            long_term.behavior_patterns,
            candidate,
            reinforcement=self.config.PATTERN_REINFORCEMENT,
            max_patterns=self.config.MAX_BEHAVIOR_PATTERNS,
        )
        self._save(user_id, state, now)
        return next(p for p in long_term.behavior_patterns if p.pattern == pattern)

    def record_session(self, user_id: str, duration_minutes: float) -> None:
        """Fold a finished session into the running engagement averages."""
        state = self._state(user_id)
        engagement = state.memory.long_term.user_profile.engagement

        # The default profile already counts the session in progress
        sessions = max(engagement.total_sessions, 1)
        total = engagement.average_session_duration * (sessions - 1) + max(duration_minutes, 0.0)
        engagement.average_session_duration = total / sessions
        engagement.total_sessions = sessions + 1
        self._save(user_id, state)

    def add_purchase(self, user_id: str, purchase: PurchaseRecord) -> None:
        state = self._state(user_id)
        long_term = state.memory.long_term
        long_term.purchase_history.insert(0, purchase)
        long_term.user_profile.engagement.total_purchases += 1
        self._save(user_id, state)

    def update_preferences(self, user_id: str, **changes: Any) -> UserPreferences:
        """
        Merge ``changes`` into the stored preferences.

        Nested models such as ``price_range`` are merged field by field, so
        ``price_range={"max": 500}`` keeps the current min and flexibility.
        """
        state = self._state(user_id)
        long_term = state.memory.long_term
        current = long_term.preferences
        merged = current.model_dump()
        for key, value in changes.items():
            if isinstance(value, BaseModel):
                value = value.model_dump(exclude_unset=True)
            if isinstance(getattr(current, key, None), BaseModel) and isinstance(value, dict):
                value = {**merged[key], **value}
            merged[key] = value
        long_term.preferences = UserPreferences(**merged)
        self._save(user_id, state)
        return long_term.preferences

    # ========== MAINTENANCE ==========

    def cleanup(self, now: Optional[datetime] = None) -> dict[str, int]:
        """
        Prune stale state across all users.

        - interactions older than the retention window
        - behaviour patterns that are weak or not seen within the window
        - expired conversational contexts
        - users idle longer than ``USER_IDLE_DAYS``

        Nothing here schedules itself; callers run it periodically.

        Returns:
            Counts of what was removed
        """
        now = to_local_naive(now) if now else self.clock()
        retention = timedelta(days=self.config.RETENTION_DAYS)
        idle_limit = timedelta(days=self.config.USER_IDLE_DAYS)

        evicted = self.store.sweep(lambda _, s: (now - s.memory.updated_at) > idle_limit)
        report = {
            "interactions_pruned": 0,
            "patterns_pruned": 0,
            "contexts_expired": 0,
            "users_evicted": len(evicted),
        }

        for user_id in self.store.keys():
            state = self.store.get(user_id)
            if state is None:
                continue
            short_term = state.memory.short_term
            long_term = state.memory.long_term

            kept = [i for i in short_term.last_interactions if (now - i.timestamp) < retention]
            report["interactions_pruned"] += len(short_term.last_interactions) - len(kept)
            short_term.last_interactions = kept

            patterns = behavior_patterns.prune_patterns(
                long_term.behavior_patterns,
                now,
                min_confidence=self.config.PATTERN_MIN_CONFIDENCE,
                max_age=retention,
            )
            report["patterns_pruned"] += len(long_term.behavior_patterns) - len(patterns)
            long_term.behavior_patterns = patterns

            if state.conversational_context and self._context_expired(
                state.conversational_context, now
            ):
                state.conversational_context = None
                report["contexts_expired"] += 1

            self.store.set(user_id, state)

        if evicted:
            logger.warning(f"Evicted {len(evicted)} idle users")
        logger.info(f"Memory cleanup complete: {report}")
        return report

    # ========== INTERNALS ==========

    def _state(self, user_id: str) -> UserState:
        state = self.store.get(user_id)
        if state is None:
            self.initialize_memory(user_id)
            state = self.store.get(user_id)
        return state

    def _save(self, user_id: str, state: UserState, now: Optional[datetime] = None) -> None:
        state.memory.updated_at = now or self.clock()
        self.store.set(user_id, state)

    def _analyze_behavior_patterns(
        self,
        memory: ConversationMemory,
        interaction: InteractionRecord,
        now: datetime,
    ) -> None:
        recent = memory.short_term.last_interactions[: self.config.PATTERN_WINDOW]
        long_term = memory.long_term
        for candidate in behavior_patterns.mine_patterns(recent, interaction, now):
            long_term.behavior_patterns = behavior_patterns.upsert_pattern(
                long_term.behavior_patterns,
                candidate,
                reinforcement=self.config.PATTERN_REINFORCEMENT,
                max_patterns=self.config.MAX_BEHAVIOR_PATTERNS,
            )

    def _context_expired(self, context: ConversationalContext, now: datetime) -> bool:
        ttl = timedelta(minutes=self.config.CONVERSATIONAL_CONTEXT_TTL_MINUTES)
        return (now - context.timestamp) > ttl

    def _decay_params(self) -> dict[str, float]:
        return {
            "decay_minutes": self.config.CONTEXT_DECAY_MINUTES,
            "positional_decay": self.config.CONTEXT_POSITIONAL_DECAY,
            "floor": self.config.CONTEXT_RELEVANCE_FLOOR,
        }

    def _default_profile(self, user_id: str) -> UserProfile:
        return UserProfile(
            id=user_id,
            demographics=Demographics(language=self.config.DEFAULT_LANGUAGE),
        )
