"""Unit tests for ConversationMemoryManager"""

from datetime import timedelta, timezone

import pytest

from vendor_memory.core.models import (
    ContextType,
    ConversationMemory,
    InteractionRecord,
    InteractionType,
    PurchaseRecord,
)
from vendor_memory.memory.conversation_memory import ConversationMemoryManager
from vendor_memory.storage.memory_store import InMemoryStore


def _interaction(clock, kind=InteractionType.MESSAGE, content="oi", minutes_ago=0):
    return InteractionRecord(
        type=kind,
        content=content,
        timestamp=clock() - timedelta(minutes=minutes_ago),
    )


class TestInitialization:
    """Lazy creation and default profile"""

    def test_get_memory_initializes_unknown_user(self, manager) -> None:
        """First access creates memory for the user"""
        memory = manager.get_memory("new-user")

        assert isinstance(memory, ConversationMemory)
        assert memory.long_term.user_profile.id == "new-user"
        assert "new-user" in manager.get_active_users()

    @pytest.mark.parametrize("user_id", ["", "   ", "ção-ü", "x" * 500])
    def test_get_memory_never_fails(self, manager, user_id) -> None:
        """Any user id yields memory"""
        memory = manager.get_memory(user_id)
        assert memory.short_term.last_interactions == []

    def test_default_profile(self, manager) -> None:
        """New users get the default profile and preferences"""
        memory = manager.get_memory("u1")
        psych = memory.long_term.user_profile.psychographics

        assert psych.personality.neuroticism == 0.5
        assert psych.communication_style.formality == "casual"
        assert psych.decision_making_style.speed == "deliberate"
        assert memory.long_term.preferences.price_range.min == 0
        assert memory.long_term.preferences.price_range.max == 10000
        assert memory.long_term.preferences.price_range.flexibility == 0.3
        assert manager.get_context_stack("u1").max_size == 10

    def test_initialize_memory_resets(self, manager) -> None:
        """Initializing again wipes existing memory"""
        manager.add_recent_product("u1", "p1")
        manager.initialize_memory("u1")
        assert manager.get_memory("u1").short_term.recent_products == []

    def test_clear_memory(self, manager) -> None:
        """Clearing removes the user and reports it"""
        manager.update_current_context("u1", "celulares", ContextType.CATEGORY)
        assert manager.clear_memory("u1") is True
        assert "u1" not in manager.get_active_users()
        assert manager.clear_memory("u1") is False
        # Comes back empty on next access
        assert manager.get_relevant_contexts("u1") == []

    def test_uses_injected_store(self, clock) -> None:
        """State lives in the store passed in"""
        store = InMemoryStore()
        manager = ConversationMemoryManager(store=store, clock=clock)
        manager.get_memory("u1")
        assert "u1" in store


class TestShortTerm:
    """Bounded short-term lists"""

    def test_recent_products_dedup_and_order(self, manager) -> None:
        """Re-viewed products move to the front without duplicates"""
        for product in ["a", "b", "c", "a", "d", "b"]:
            manager.add_recent_product("u1", product)

        products = manager.get_memory("u1").short_term.recent_products
        assert products == ["b", "d", "a", "c"]
        assert len(products) == len(set(products))

    def test_recent_products_capped(self, manager) -> None:
        """Recent products are bounded"""
        for i in range(45):
            manager.add_recent_product("u1", f"p{i % 30}")

        products = manager.get_memory("u1").short_term.recent_products
        assert len(products) == 20
        assert products[0] == "p14"
        assert len(products) == len(set(products))

    def test_interactions_capped_most_recent_first(self, manager, clock) -> None:
        """Interactions are bounded, newest first"""
        for i in range(60):
            manager.add_interaction("u1", _interaction(clock, content=f"msg {i}"))

        interactions = manager.get_memory("u1").short_term.last_interactions
        assert len(interactions) == 50
        assert interactions[0].content == "msg 59"

    def test_session_goals_unique(self, manager) -> None:
        """Session goals are stored once each"""
        manager.add_session_goal("u1", "comprar celular")
        manager.add_session_goal("u1", "comprar celular")
        assert manager.get_memory("u1").short_term.session_goals == ["comprar celular"]


class TestContext:
    """Current context and the context stack"""

    def test_update_current_context(self, manager) -> None:
        """Setting a topic updates focus and pushes a frame"""
        frame = manager.update_current_context("u1", "notebooks", ContextType.CATEGORY)

        assert manager.get_memory("u1").short_term.current_context == "notebooks"
        stack = manager.get_context_stack("u1")
        assert stack.current_focus == frame.id
        assert stack.contexts[0].type == ContextType.CATEGORY

    def test_stack_bounded(self, manager, clock) -> None:
        """The context stack respects its size limit"""
        for i in range(15):
            clock.advance(seconds=10)
            manager.update_current_context("u1", f"topic {i}")
            assert len(manager.get_context_stack("u1").contexts) <= 10

    def test_relevant_contexts_decay_and_limit(self, manager, clock) -> None:
        """Relevant contexts are decayed and limited"""
        for i in range(4):
            manager.update_current_context("u1", f"topic {i}")
            clock.advance(minutes=1)

        top = manager.get_relevant_contexts("u1", limit=2)
        assert len(top) == 2
        assert top[0].content == "topic 3"
        assert top[0].relevance >= top[1].relevance

    def test_relevance_non_increasing_over_time(self, manager, clock) -> None:
        """Relevance only goes down as time passes"""
        manager.update_current_context("u1", "tv")
        clock.advance(minutes=5)
        first = manager.get_relevant_contexts("u1")[0].relevance
        clock.advance(minutes=5)
        second = manager.get_relevant_contexts("u1")[0].relevance
        assert second <= first

    def test_old_contexts_fall_off(self, manager, clock) -> None:
        """Frames decayed below the floor disappear"""
        manager.update_current_context("u1", "tv")
        clock.advance(hours=2)
        assert manager.get_relevant_contexts("u1") == []

    def test_conversational_context_merge_and_expiry(self, manager, clock) -> None:
        """Search focus merges updates and expires after the TTL"""
        manager.save_conversational_context("u1", focus="iphone", brand="apple")
        merged = manager.save_conversational_context("u1", category="celular", last_models=["15"])

        assert merged.focus == "iphone"
        assert merged.category == "celular"
        assert merged.last_models == ["15"]

        clock.advance(minutes=31)
        assert manager.get_conversational_context("u1") is None

    def test_conversational_context_absent(self, manager) -> None:
        """No search focus for an unknown user"""
        assert manager.get_conversational_context("nobody") is None


class TestBehaviorPatterns:
    """Mining through add_interaction"""

    def test_repeated_search_detected(self, manager, clock) -> None:
        """Three matching searches record repeated_search"""
        for _ in range(3):
            manager.add_interaction("u1", _interaction(clock, InteractionType.QUERY, "iphone 15"))

        patterns = manager.get_memory("u1").long_term.behavior_patterns
        assert [p.pattern for p in patterns] == ["repeated_search"]

    def test_reinforcement_keeps_confidence_bounded(self, manager, clock) -> None:
        """Repeated detection keeps confidence at or below 1.0"""
        for _ in range(40):
            manager.add_interaction("u1", _interaction(clock, InteractionType.QUERY, "tv"))

        pattern = manager.get_memory("u1").long_term.behavior_patterns[0]
        assert pattern.confidence == 1.0
        assert pattern.frequency == 38

    def test_price_sensitive_abandonment(self, manager, clock) -> None:
        """Click, price remark and abandon record the pattern"""
        manager.add_interaction("u1", _interaction(clock, InteractionType.CLICK, "iphone"))
        manager.add_interaction("u1", _interaction(clock, InteractionType.MESSAGE, "qual o preço?"))
        manager.add_interaction("u1", _interaction(clock, InteractionType.ABANDON, ""))

        names = [p.pattern for p in manager.get_memory("u1").long_term.behavior_patterns]
        assert "price_sensitive_abandonment" in names

    def test_update_behavior_patterns_external(self, manager) -> None:
        """Externally detected patterns are upserted"""
        first = manager.update_behavior_patterns("u1", "night_shopper", frequency=3, confidence=0.6)
        assert first.confidence == 0.6
        again = manager.update_behavior_patterns("u1", "night_shopper")
        assert again.frequency == 4
        assert again.confidence == pytest.approx(0.7)


class TestLongTerm:
    def test_record_session_running_average(self, manager) -> None:
        """Session lengths fold into a running average"""
        manager.record_session("u1", 10)
        manager.record_session("u1", 20)

        engagement = manager.get_memory("u1").long_term.user_profile.engagement
        assert engagement.average_session_duration == pytest.approx(15)
        assert engagement.total_sessions == 3

    def test_add_purchase(self, manager) -> None:
        """Purchases are recorded and counted"""
        manager.add_purchase("u1", PurchaseRecord(product_id="p1", category="celular", price=900))
        memory = manager.get_memory("u1")
        assert memory.long_term.purchase_history[0].product_id == "p1"
        assert memory.long_term.user_profile.engagement.total_purchases == 1

    def test_update_preferences(self, manager) -> None:
        """Preference changes are merged"""
        prefs = manager.update_preferences("u1", brands=["apple"], price_range={"min": 100, "max": 500})
        assert prefs.brands == ["apple"]
        assert prefs.price_range.max == 500

    def test_update_price_range_keeps_other_bounds(self, manager) -> None:
        """Updating one price bound keeps the rest of the range"""
        manager.update_preferences("u1", price_range={"min": 100, "max": 500, "flexibility": 0.1})
        prefs = manager.update_preferences("u1", price_range={"max": 800})

        assert prefs.price_range.min == 100
        assert prefs.price_range.max == 800
        assert prefs.price_range.flexibility == 0.1

    def test_update_preferences_replaces_lists(self, manager) -> None:
        """List preferences are replaced, not appended to"""
        manager.update_preferences("u1", brands=["apple"])
        prefs = manager.update_preferences("u1", brands=["samsung"])
        assert prefs.brands == ["samsung"]


class TestCleanup:
    """Periodic sweep"""

    def test_prunes_old_interactions(self, manager, clock) -> None:
        """Interactions past retention are removed"""
        manager.add_interaction("u1", _interaction(clock, content="old", minutes_ago=8 * 24 * 60))
        manager.add_interaction("u1", _interaction(clock, content="new"))

        report = manager.cleanup()

        interactions = manager.get_memory("u1").short_term.last_interactions
        assert [i.content for i in interactions] == ["new"]
        assert report["interactions_pruned"] == 1
        cutoff = clock() - timedelta(days=7)
        assert all(i.timestamp > cutoff for i in interactions)

    def test_prunes_weak_and_stale_patterns(self, manager, clock) -> None:
        """Weak or stale patterns are removed"""
        manager.update_behavior_patterns("u1", "weak", confidence=0.2)
        manager.update_behavior_patterns("u1", "stale", confidence=0.9, last_observed=clock() - timedelta(days=8))
        manager.update_behavior_patterns("u1", "kept", confidence=0.9)

        manager.cleanup()

        names = [p.pattern for p in manager.get_memory("u1").long_term.behavior_patterns]
        assert names == ["kept"]

    def test_evicts_idle_users(self, manager, clock) -> None:
        """Users idle past the limit are evicted"""
        manager.get_memory("idle")
        clock.advance(days=8)
        manager.get_memory("active")

        report = manager.cleanup()

        assert report["users_evicted"] == 1
        assert manager.get_active_users() == ["active"]

    def test_expires_conversational_context(self, manager, clock) -> None:
        """Stale search focus is dropped"""
        manager.save_conversational_context("u1", focus="tv")
        clock.advance(minutes=45)
        report = manager.cleanup()
        assert report["contexts_expired"] == 1

    def test_aware_timestamps_do_not_break_cleanup(self, manager, clock) -> None:
        """UTC timestamps from callers are pruned like local ones, for every user"""
        old = (clock() - timedelta(days=8)).astimezone(timezone.utc)
        manager.add_interaction("u1", InteractionRecord(type=InteractionType.QUERY, content="tv", timestamp=old))
        manager.add_interaction(
            "u2",
            InteractionRecord.model_validate(
                {"type": "query", "content": "tv", "timestamp": old.strftime("%Y-%m-%dT%H:%M:%S.000Z")}
            ),
        )
        manager.update_behavior_patterns("u2", "stale", confidence=0.9, last_observed=old)

        report = manager.cleanup()

        assert report["interactions_pruned"] == 2
        assert report["patterns_pruned"] == 1
        assert manager.get_memory("u1").short_term.last_interactions == []
        assert manager.get_memory("u2").short_term.last_interactions == []

    def test_cleanup_accepts_aware_now(self, manager, clock) -> None:
        """An explicit UTC ``now`` is compared in local time"""
        manager.add_interaction("u1", _interaction(clock, content="recent"))

        report = manager.cleanup(now=clock().astimezone(timezone.utc))

        assert report["interactions_pruned"] == 0
        assert report["users_evicted"] == 0
