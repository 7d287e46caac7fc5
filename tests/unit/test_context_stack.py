"""Unit tests for context relevance decay"""

import math
from datetime import datetime, timedelta

import pytest

from vendor_memory.core.models import ContextFrame, ContextStack, ContextType
from vendor_memory.memory.context_stack import (
    decayed_relevance,
    new_frame,
    push_frame,
    recompute_relevance,
    refresh,
    top_contexts,
)

NOW = datetime(2024, 6, 3, 14, 0, 0)


def _frame(name: str, minutes_ago: float = 0.0, relevance: float = 1.0) -> ContextFrame:
    return ContextFrame(
        id=name,
        type=ContextType.PRODUCT,
        content=name,
        relevance=relevance,
        timestamp=NOW - timedelta(minutes=minutes_ago),
    )


class TestDecayedRelevance:
    """The decay formula itself"""

    def test_fresh_top_frame_keeps_full_relevance(self) -> None:
        """A brand-new frame at rank 0 keeps relevance 1.0"""
        assert decayed_relevance(1.0, 0.0, 0) == pytest.approx(1.0)

    def test_temporal_and_positional_terms(self) -> None:
        """Decay combines age and stack position"""
        expected = math.exp(-15 / 30) * math.exp(-2 * 0.2)
        assert decayed_relevance(1.0, 15.0, 2) == pytest.approx(expected)

    def test_half_life_about_21_minutes(self) -> None:
        """Temporal decay halves relevance in about 21 minutes"""
        assert decayed_relevance(1.0, 30 * math.log(2), 0) == pytest.approx(0.5)

    def test_never_exceeds_prior(self) -> None:
        """Decay never raises a frame above its previous relevance"""
        assert decayed_relevance(0.2, 0.0, 0) == 0.2

    def test_negative_age_treated_as_zero(self) -> None:
        """Frames stamped in the future do not gain relevance"""
        assert decayed_relevance(1.0, -10.0, 0) == pytest.approx(1.0)


class TestRecompute:
    """Whole-stack recomputation"""

    def test_drops_frames_at_or_below_floor(self) -> None:
        """Frames at the floor are discarded"""
        frames = [_frame("fresh"), _frame("ancient", minutes_ago=120)]
        result = recompute_relevance(frames, NOW)
        assert [f.id for f in result] == ["fresh"]

    def test_sorted_descending(self) -> None:
        """Frames come back most relevant first"""
        frames = [_frame("a", minutes_ago=20), _frame("b", minutes_ago=1), _frame("c", minutes_ago=5)]
        result = recompute_relevance(frames, NOW)
        relevances = [f.relevance for f in result]
        assert relevances == sorted(relevances, reverse=True)

    def test_does_not_mutate_input(self) -> None:
        """Recomputing returns new frames"""
        frames = [_frame("a", minutes_ago=20)]
        recompute_relevance(frames, NOW)
        assert frames[0].relevance == 1.0

    def test_monotonic_without_push(self) -> None:
        """Relevance at a later time never exceeds an earlier reading"""
        frames = [_frame(f"f{i}", minutes_ago=i * 3) for i in range(6)]
        first = {f.id: f.relevance for f in recompute_relevance(frames, NOW)}

        later = recompute_relevance(recompute_relevance(frames, NOW), NOW + timedelta(minutes=7))
        for frame in later:
            assert frame.relevance <= first[frame.id]


class TestPushFrame:
    """Pushing onto a bounded stack"""

    def test_push_sets_focus(self) -> None:
        """Pushing a frame makes it the current focus"""
        stack = ContextStack()
        frame = new_frame("iphone", ContextType.PRODUCT, NOW)
        stack = push_frame(stack, frame, NOW)

        assert stack.current_focus == frame.id
        assert stack.contexts[0].id == frame.id
        assert stack.contexts[0].relevance == pytest.approx(1.0)

    def test_capped_at_max_size(self) -> None:
        """The stack never grows past its size limit"""
        stack = ContextStack(max_size=10)
        now = NOW
        for i in range(25):
            now = now + timedelta(seconds=5)
            stack = push_frame(stack, new_frame(f"topic {i}", ContextType.CATEGORY, now), now)
            assert len(stack.contexts) <= 10

    def test_newest_frame_ranks_first(self) -> None:
        """The latest topic outranks older ones"""
        stack = ContextStack()
        now = NOW
        for name in ("tv", "notebook", "celular"):
            now = now + timedelta(minutes=1)
            stack = push_frame(stack, new_frame(name, ContextType.PRODUCT, now), now)

        assert stack.contexts[0].content == "celular"

    def test_frame_ids_unique_within_same_millisecond(self) -> None:
        """Frame ids stay unique under a frozen clock"""
        a = new_frame("x", ContextType.GOAL, NOW)
        b = new_frame("x", ContextType.GOAL, NOW)
        assert a.id != b.id
        assert a.id.startswith("goal_")

    def test_refresh_and_top(self) -> None:
        """Refresh decays to now and top returns the best frames"""
        stack = ContextStack(contexts=[_frame("a", minutes_ago=1), _frame("b", minutes_ago=2)])
        stack = refresh(stack, NOW)
        assert len(top_contexts(stack, 1)) == 1
        assert top_contexts(stack, 0) == []
