"""
Verification path: secret comparison, one-shot consumption of a match,
ordered precondition checks and the item status cascade.
"""

import asyncio
from datetime import date

import pytest
from sqlalchemy import delete

from lostfound.errors import (
    AuthorizationError,
    IntegrityError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lostfound.models import FoundItem, LostItem, Match
from lostfound.modules.matches.service import WRONG_SECRET_MESSAGE, VerificationResult
from lostfound.modules.matches.store import MatchStore


@pytest.fixture
def pending_match(service, add_lost, add_found):
    """Lost "blue backpack" (bags, 2024-01-10) paired with found "Blue Backpack" (2024-01-14)."""

    async def _make(finder="finder"):
        lost = await add_lost(
            item_name="blue backpack",
            category="bags",
            lost_date=date(2024, 1, 10),
            secret_identifier="torn zipper tag",
        )
        found = await add_found(item_name="Blue Backpack", found_date=date(2024, 1, 14), finder=finder)
        [match] = await service.create_matches(lost)
        return match, lost, found

    return _make


async def _reload(session_factory, model, pk):
    async with session_factory() as session:
        return await session.get(model, pk)


class TestVerifyAccepted:
    @pytest.mark.asyncio
    async def test_backpack_scenario(self, service, session_factory, users, pending_match):
        match, lost, found = await pending_match()

        result = await service.verify(match.id, "  TORN ZIPPER TAG ", users["owner"].id)

        assert isinstance(result, VerificationResult)
        assert result.accepted is True
        assert result.match.status == "accepted"
        assert (await _reload(session_factory, LostItem, lost.id)).status == "reclaimed"
        assert (await _reload(session_factory, FoundItem, found.id)).status == "returned"
        assert (await _reload(session_factory, Match, match.id)).status == "accepted"

    @pytest.mark.asyncio
    async def test_both_parties_notified(self, service, notifier, users, pending_match):
        match, _, _ = await pending_match()
        notifier.sent.clear()
        await service.verify(match.id, "torn zipper tag", users["owner"].id)
        assert notifier.events_for(users["owner"].id) == ["match_verified"]
        assert notifier.events_for(users["finder"].id) == ["match_verified"]

    @pytest.mark.asyncio
    async def test_anonymous_found_item_still_cascades(self, service, session_factory, notifier, users, pending_match):
        match, lost, found = await pending_match(finder=None)
        notifier.sent.clear()
        result = await service.verify(match.id, "torn zipper tag", users["owner"].id)
        assert result.accepted is True
        assert (await _reload(session_factory, FoundItem, found.id)).status == "returned"
        assert [n["user_id"] for n in notifier.sent] == [users["owner"].id]

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_undo_acceptance(
        self, service, session_factory, failing_notifier, users, pending_match
    ):
        match, _, _ = await pending_match()
        service.notifier = failing_notifier
        result = await service.verify(match.id, "torn zipper tag", users["owner"].id)
        assert result.accepted is True
        assert (await _reload(session_factory, Match, match.id)).status == "accepted"

    @pytest.mark.asyncio
    async def test_crashing_notifier_does_not_fail_verification(
        self, service, session_factory, crashing_notifier, users, pending_match
    ):
        match, lost, _ = await pending_match()
        service.notifier = crashing_notifier
        result = await service.verify(match.id, "torn zipper tag", users["owner"].id)
        assert result.accepted is True
        assert crashing_notifier.attempts == 2
        assert (await _reload(session_factory, LostItem, lost.id)).status == "reclaimed"

    @pytest.mark.asyncio
    async def test_crashing_notifier_does_not_fail_rejection(
        self, service, session_factory, crashing_notifier, users, pending_match
    ):
        match, _, _ = await pending_match()
        service.notifier = crashing_notifier
        rejected = await service.reject(match.id, users["owner"].id, "not mine")
        assert rejected.status == "rejected"
        assert (await _reload(session_factory, Match, match.id)).status == "rejected"

    @pytest.mark.asyncio
    async def test_other_pending_matches_are_untouched(self, service, session_factory, users, add_found, pending_match):
        match, lost, _ = await pending_match()
        await add_found(item_name="blue backpack (navy)")
        [other] = await service.create_matches(lost)
        await service.verify(match.id, "torn zipper tag", users["owner"].id)
        assert (await _reload(session_factory, Match, other.id)).status == "pending"


class TestVerifyWrongSecret:
    @pytest.mark.asyncio
    async def test_wrong_secret_consumes_match(self, service, session_factory, notifier, users, pending_match):
        match, lost, found = await pending_match()
        notifier.sent.clear()

        result = await service.verify(match.id, "red sticker", users["owner"].id)

        assert result.accepted is False
        assert result.message == WRONG_SECRET_MESSAGE
        assert result.match.status == "rejected"
        assert result.match.notes == "Secret identifier did not match"
        assert (await _reload(session_factory, LostItem, lost.id)).status == "lost"
        assert (await _reload(session_factory, FoundItem, found.id)).status == "found"
        assert notifier.events_for(users["finder"].id) == ["match_rejected"]
        assert notifier.events_for(users["owner"].id) == []

    @pytest.mark.asyncio
    async def test_correct_secret_after_wrong_one_is_refused(self, service, session_factory, users, pending_match):
        match, lost, _ = await pending_match()
        await service.verify(match.id, "red sticker", users["owner"].id)

        with pytest.raises(InvalidStateError) as exc_info:
            await service.verify(match.id, "torn zipper tag", users["owner"].id)
        assert exc_info.value.current_status == "rejected"
        assert (await _reload(session_factory, LostItem, lost.id)).status == "lost"


class TestPreconditions:
    @pytest.mark.asyncio
    async def test_empty_secret(self, service, users, pending_match):
        match, _, _ = await pending_match()
        for value in ("", "   ", None):
            with pytest.raises(ValidationError):
                await service.verify(match.id, value, users["owner"].id)

    @pytest.mark.asyncio
    async def test_unknown_match(self, service, users):
        with pytest.raises(NotFoundError):
            await service.verify(4242, "torn zipper tag", users["owner"].id)

    @pytest.mark.asyncio
    async def test_missing_lost_item(self, service, session_factory, users, pending_match):
        match, lost, _ = await pending_match()
        async with session_factory() as session:
            await session.execute(delete(LostItem).where(LostItem.id == lost.id))
            await session.commit()
        with pytest.raises(IntegrityError):
            await service.verify(match.id, "torn zipper tag", users["owner"].id)

    @pytest.mark.asyncio
    async def test_only_owner_may_verify(self, service, session_factory, users, pending_match):
        match, _, _ = await pending_match()
        for intruder in ("finder", "stranger"):
            with pytest.raises(AuthorizationError):
                await service.verify(match.id, "torn zipper tag", users[intruder].id)
        assert (await _reload(session_factory, Match, match.id)).status == "pending"

    @pytest.mark.asyncio
    async def test_only_owner_may_reject(self, service, session_factory, users, pending_match):
        match, _, _ = await pending_match()
        with pytest.raises(AuthorizationError):
            await service.reject(match.id, users["stranger"].id, "not mine")
        assert (await _reload(session_factory, Match, match.id)).status == "pending"

    @pytest.mark.asyncio
    async def test_authorization_checked_before_state(self, service, users, pending_match):
        match, _, _ = await pending_match()
        await service.reject(match.id, users["owner"].id)
        with pytest.raises(AuthorizationError):
            await service.verify(match.id, "torn zipper tag", users["stranger"].id)


class TestReject:
    @pytest.mark.asyncio
    async def test_reject_stores_reason_and_notifies_finder(self, service, notifier, users, pending_match):
        match, lost, found = await pending_match()
        notifier.sent.clear()

        rejected = await service.reject(match.id, users["owner"].id, "  wrong colour  ")

        assert rejected.status == "rejected"
        assert rejected.notes == "wrong colour"
        [sent] = notifier.sent
        assert sent["user_id"] == users["finder"].id
        assert sent["event"] == "match_rejected"
        assert "wrong colour" in sent["message"]

    @pytest.mark.asyncio
    async def test_reject_does_not_cascade(self, service, session_factory, users, pending_match):
        match, lost, found = await pending_match()
        await service.reject(match.id, users["owner"].id)
        assert (await _reload(session_factory, LostItem, lost.id)).status == "lost"
        assert (await _reload(session_factory, FoundItem, found.id)).status == "found"

    @pytest.mark.asyncio
    async def test_reject_twice(self, service, users, pending_match):
        match, _, _ = await pending_match()
        await service.reject(match.id, users["owner"].id)
        with pytest.raises(InvalidStateError):
            await service.reject(match.id, users["owner"].id)

    @pytest.mark.asyncio
    async def test_verify_after_accept_is_refused(self, service, users, pending_match):
        match, _, _ = await pending_match()
        await service.verify(match.id, "torn zipper tag", users["owner"].id)
        with pytest.raises(InvalidStateError) as exc_info:
            await service.reject(match.id, users["owner"].id)
        assert exc_info.value.current_status == "accepted"


class TestConcurrentVerification:
    @pytest.mark.asyncio
    async def test_simultaneous_verify_accepts_once(self, service, session_factory, users, pending_match):
        match, _, _ = await pending_match()
        owner = users["owner"].id

        outcomes = await asyncio.gather(
            service.verify(match.id, "torn zipper tag", owner),
            service.verify(match.id, "torn zipper tag", owner),
            return_exceptions=True,
        )

        accepted = [o for o in outcomes if isinstance(o, VerificationResult) and o.accepted]
        refused = [o for o in outcomes if isinstance(o, InvalidStateError)]
        assert len(accepted) == 1
        assert len(refused) == 1
        assert (await _reload(session_factory, Match, match.id)).status == "accepted"

    @pytest.mark.asyncio
    async def test_failed_transition_rolls_back_item_cascade(
        self, service, session_factory, users, pending_match, monkeypatch
    ):
        match, lost, found = await pending_match()

        async def refuse(store, m, to_status, notes=None):
            raise InvalidStateError("rejected")

        monkeypatch.setattr(MatchStore, "transition", refuse)

        with pytest.raises(InvalidStateError):
            await service.verify(match.id, "torn zipper tag", users["owner"].id)

        assert (await _reload(session_factory, LostItem, lost.id)).status == "lost"
        assert (await _reload(session_factory, FoundItem, found.id)).status == "found"
        assert (await _reload(session_factory, Match, match.id)).status == "pending"


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_for_lost_item_owner_only(self, service, users, pending_match):
        match, lost, _ = await pending_match()
        assert [m.id for m in await service.list_for_lost_item(lost.id, users["owner"].id)] == [match.id]
        with pytest.raises(AuthorizationError):
            await service.list_for_lost_item(lost.id, users["finder"].id)
        with pytest.raises(NotFoundError):
            await service.list_for_lost_item(9999, users["owner"].id)

    @pytest.mark.asyncio
    async def test_list_for_user(self, service, users, pending_match):
        match, _, _ = await pending_match()
        assert [m.id for m in await service.list_for_user(users["finder"].id)] == [match.id]
        assert await service.list_for_user(users["stranger"].id) == []
