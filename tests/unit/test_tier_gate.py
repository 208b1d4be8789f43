"""Tier gating rules."""

from __future__ import annotations

import pytest

from tradeya.challenges.tier_gate import TierGate, required_tier
from tradeya.errors import TierLocked
from tradeya.gamification.progression import tiers_from_completions


class FakeTiers:
    def __init__(self, tiers: set[str]) -> None:
        self.tiers = tiers
        self.calls = 0

    async def get_unlocked_tiers(self, user_id: str) -> set[str]:
        self.calls += 1
        return self.tiers


class TestRequiredTier:
    def test_trade_and_collaboration_are_gated(self):
        assert required_tier("trade").value == "TRADE"
        assert required_tier("collaboration").value == "COLLABORATION"

    @pytest.mark.parametrize("challenge_type", ["solo", "daily", "weekly", "skill", "community"])
    def test_other_types_are_ungated(self, challenge_type):
        assert required_tier(challenge_type) is None


class TestTierGate:
    @pytest.mark.asyncio
    async def test_disabled_gate_allows_everything(self):
        source = FakeTiers({"SOLO"})
        gate = TierGate(source, enabled=False)
        assert await gate.is_allowed("u1", "collaboration")
        assert source.calls == 0

    @pytest.mark.asyncio
    async def test_locked_trade_raises(self):
        gate = TierGate(FakeTiers({"SOLO"}), enabled=True)
        with pytest.raises(TierLocked, match="3 Solo challenges"):
            await gate.check("u1", "trade")

    @pytest.mark.asyncio
    async def test_unlocked_trade_passes(self):
        gate = TierGate(FakeTiers({"SOLO", "TRADE"}), enabled=True)
        await gate.check("u1", "trade")
        assert not await gate.is_allowed("u1", "collaboration")

    @pytest.mark.asyncio
    async def test_solo_never_queries_progression(self):
        source = FakeTiers(set())
        gate = TierGate(source, enabled=True)
        await gate.check("u1", "solo")
        assert source.calls == 0


class TestTiersFromCompletions:
    def test_no_history_is_solo_only(self):
        assert tiers_from_completions({}) == {"SOLO"}

    def test_two_solo_is_not_enough(self):
        assert tiers_from_completions({"solo": 2}) == {"SOLO"}

    def test_three_solo_unlocks_trade(self):
        assert tiers_from_completions({"solo": 3}) == {"SOLO", "TRADE"}

    def test_five_trade_unlocks_collaboration(self):
        assert tiers_from_completions({"solo": 3, "trade": 5}) == {"SOLO", "TRADE", "COLLABORATION"}

    def test_other_types_do_not_count(self):
        assert tiers_from_completions({"daily": 10, "skill": 10}) == {"SOLO"}
