"""Integration: skill endorsements and their XP."""

from __future__ import annotations

import pytest

from tradeya.db.models import UserProgression
from tradeya.errors import SelfEndorsement
from tradeya.gamification.endorsements import EndorsementLedger
from tradeya.notifications import ENDORSEMENT_RECEIVED


class TestEndorsementLedger:
    @pytest.mark.asyncio
    async def test_endorse_grants_skill_xp(self, session_factory, db_session, notifier):
        ledger = EndorsementLedger(session_factory, notifier=notifier)

        assert await ledger.add_endorsement("alice", "bob", "react") is True

        progression = await db_session.get(UserProgression, "alice")
        assert progression.experience == 10
        assert progression.skill_experience == {"react": 10}
        notifier.notify.assert_awaited_once_with("alice", ENDORSEMENT_RECEIVED, {"skill": "react", "endorser_id": "bob"})

    @pytest.mark.asyncio
    async def test_duplicate_endorsement_is_ignored(self, session_factory, db_session):
        ledger = EndorsementLedger(session_factory)

        assert await ledger.add_endorsement("alice", "bob", "react") is True
        assert await ledger.add_endorsement("alice", "bob", " react ") is False

        progression = await db_session.get(UserProgression, "alice")
        assert progression.experience == 10

    @pytest.mark.asyncio
    async def test_self_endorsement_rejected(self, session_factory):
        ledger = EndorsementLedger(session_factory)
        with pytest.raises(SelfEndorsement):
            await ledger.add_endorsement("alice", "alice", "react")

    @pytest.mark.asyncio
    async def test_get_endorsements_groups_by_skill(self, session_factory):
        ledger = EndorsementLedger(session_factory)
        await ledger.add_endorsement("alice", "bob", "react")
        await ledger.add_endorsement("alice", "carol", "react")
        await ledger.add_endorsement("alice", "bob", "design")
        await ledger.add_endorsement("dave", "bob", "react")

        assert await ledger.get_endorsements("alice") == {
            "react": {"bob", "carol"},
            "design": {"bob"},
        }
        assert await ledger.get_endorsements("nobody") == {}

    @pytest.mark.asyncio
    async def test_zero_award_records_without_xp(self, session_factory, db_session):
        ledger = EndorsementLedger(session_factory, xp_award=0)
        assert await ledger.add_endorsement("alice", "bob", "react") is True
        assert await db_session.get(UserProgression, "alice") is None
