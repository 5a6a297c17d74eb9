"""
Match lifecycle controller.

Creation path: item persisted -> candidate search -> one transaction per
candidate pair -> ``match_created`` notifications. Nothing on this path raises
to the item-creation caller; failures are logged and shrink the result.

Verification path: the lost item's owner confirms (``verify``) or denies
(``reject``) a pending match. A wrong secret identifier burns the match: it
moves to ``rejected`` and can never be accepted afterwards.
"""

from __future__ import annotations

import asyncio
import hmac
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...errors import (
    AuthorizationError,
    DependencyError,
    DuplicateError,
    IntegrityError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ...logger import get_logger
from ...models.enums import ITEM_KINDS
from ...models.found_item import FoundItem
from ...models.lost_item import LostItem
from ...models.match import Match
from ..items.registry import ItemRegistry
from ..notifications.emitter import NotificationEmitter
from .search import DEFAULT_WINDOW_DAYS, AnyItem, find_candidates, item_kind
from .store import MatchStore

logger = get_logger(__name__)

WRONG_SECRET_MESSAGE = (
    "This match was rejected because the identifier did not match. "
    "It cannot be verified again; please review your other candidate matches."
)


def normalize_secret(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().casefold()


@dataclass
class VerificationResult:
    match: Match
    accepted: bool
    message: str


class MatchService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: NotificationEmitter,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> None:
        self.session_factory = session_factory
        self.notifier = notifier
        self.window_days = window_days

    # ---- Creation path ----

    async def find_candidates(self, item: AnyItem) -> List[AnyItem]:
        async with self.session_factory() as session:
            return await find_candidates(session, item, self.window_days)

    async def create_matches(self, item: AnyItem) -> List[Match]:
        """Persist a pending match for every new candidate pair of ``item``.

        Returns only the matches created by this call. Pairs that already have
        a match, including ones inserted concurrently by another trigger, are
        skipped without error.
        """
        kind = item_kind(item)
        try:
            candidates = await self.find_candidates(item)
        except Exception:
            logger.exception("Candidate search failed for %s item %s", kind, item.id)
            return []

        logger.info("%d candidate(s) for %s item %s (%r)", len(candidates), kind, item.id, item.item_name)
        created: List[Match] = []
        for cand in candidates:
            lost, found = (item, cand) if kind == "lost" else (cand, item)
            try:
                match = await self._create_one(lost, found)
            except Exception:
                logger.exception("Error creating match for lost %s / found %s", lost.id, found.id)
                continue
            if match is not None:
                created.append(match)
        return created

    async def _create_one(self, lost: LostItem, found: FoundItem) -> Optional[Match]:
        async with self.session_factory() as session:
            store = MatchStore(session)
            existing = await store.find(lost.id, found.id)
            if existing is not None:
                logger.info("Skip - match already exists: %s", existing.id)
                return None
            try:
                match = await store.create(lost, found)
                await session.commit()
            except DuplicateError:
                # Skip on duplicate: another trigger created this pair first.
                logger.info("Duplicate match prevented by unique constraint (race): lost %s / found %s", lost.id, found.id)
                return None

        logger.info("Match created: %s (lost %s / found %s)", match.id, lost.id, found.id)
        meta = self._metadata(match)
        await self._notify(
            match.loser_id,
            "match_created",
            "Potential match found",
            f'New match found for "{lost.item_name}"',
            meta,
        )
        if match.finder_id is not None:
            await self._notify(
                match.finder_id,
                "match_created",
                "Your found item may have an owner",
                f'Your found item may match "{lost.item_name}"',
                meta,
            )
        return match

    async def on_item_created(self, item_id: int, kind: str, timeout: float | None = None) -> List[Match]:
        """Run the creation path for an item that has already been committed.

        ``timeout`` bounds the whole pass; on expiry the pass is abandoned
        (matches already committed stay) and an empty list is returned. A
        later ``rescan`` picks up whatever was missed.
        """
        if kind not in ITEM_KINDS:
            raise ValidationError(f"Unknown item kind: {kind}")
        try:
            async with self.session_factory() as session:
                registry = ItemRegistry(session)
                if kind == "lost":
                    item = await registry.get_lost_item(item_id)
                else:
                    item = await registry.get_found_item(item_id)
        except Exception:
            logger.exception("Could not load %s item %s for matching", kind, item_id)
            return []
        if item is None:
            logger.warning("%s item %s not found; matching skipped", kind.capitalize(), item_id)
            return []

        if timeout is None:
            return await self.create_matches(item)
        try:
            return await asyncio.wait_for(self.create_matches(item), timeout)
        except asyncio.TimeoutError:
            logger.warning("Matching for %s item %s timed out after %.1fs", kind, item_id, timeout)
            return []

    async def rescan(self, kind: str | None = None) -> int:
        """Re-run the creation path over every open item. Returns matches created."""
        if kind is not None and kind not in ITEM_KINDS:
            raise ValidationError(f"Unknown item kind: {kind}")
        kinds = (kind,) if kind else ITEM_KINDS
        total = 0
        for k in kinds:
            async with self.session_factory() as session:
                registry = ItemRegistry(session)
                if k == "lost":
                    items: List[AnyItem] = list(await registry.list_open_lost_items())
                else:
                    items = list(await registry.list_open_found_items())
            logger.info("Rescanning %d open %s item(s)", len(items), k)
            for item in items:
                total += len(await self.create_matches(item))
        logger.info("Rescan finished: %d match(es) created", total)
        return total

    # ---- Verification path ----

    async def verify(self, match_id: int, secret_identifier: Any, requesting_user_id: int) -> VerificationResult:
        provided = normalize_secret(secret_identifier)
        if not provided:
            raise ValidationError("Please provide secretIdentifier")

        async with self.session_factory() as session:
            async with session.begin():
                store = MatchStore(session)
                registry = ItemRegistry(session)
                match, lost, found = await self._load_for_action(store, registry, match_id, requesting_user_id)
                expected = normalize_secret(lost.secret_identifier)
                accepted = bool(expected) and hmac.compare_digest(expected.encode(), provided.encode())
                if accepted:
                    await registry.set_lost_status(lost.id, "reclaimed")
                    if found is not None:
                        await registry.set_found_status(found.id, "returned")
                    match = await store.transition(match, "accepted")
                else:
                    match = await store.transition(match, "rejected", notes="Secret identifier did not match")

        meta = self._metadata(match)
        finder_id = self._finder_of(match, found)
        found_name = found.item_name if found is not None else "item"
        if accepted:
            logger.info("Match %s accepted by owner %s", match.id, requesting_user_id)
            await self._notify(
                match.loser_id,
                "match_verified",
                f'Match accepted for "{lost.item_name}"',
                "You accepted a match. The lost item is now marked as reclaimed.",
                meta,
            )
            if finder_id is not None:
                await self._notify(
                    finder_id,
                    "match_verified",
                    f'A match was accepted for your found item "{found_name}"',
                    "The owner verified the match. Please coordinate to return the item.",
                    meta,
                )
            return VerificationResult(match, True, "Match accepted successfully")

        logger.info("Match %s rejected: secret identifier mismatch", match.id)
        if finder_id is not None:
            await self._notify(
                finder_id,
                "match_rejected",
                f'Match rejected for "{found_name}"',
                "Owner checked the match and said it is not a match.",
                meta,
            )
        return VerificationResult(match, False, WRONG_SECRET_MESSAGE)

    async def reject(self, match_id: int, requesting_user_id: int, reason: str | None = None) -> Match:
        reason = (reason or "").strip() or None
        async with self.session_factory() as session:
            async with session.begin():
                store = MatchStore(session)
                registry = ItemRegistry(session)
                match, _lost, found = await self._load_for_action(store, registry, match_id, requesting_user_id)
                match = await store.transition(match, "rejected", notes=reason)

        logger.info("Match %s rejected by owner %s", match.id, requesting_user_id)
        finder_id = self._finder_of(match, found)
        if finder_id is not None:
            found_name = found.item_name if found is not None else "item"
            await self._notify(
                finder_id,
                "match_rejected",
                f'Match rejected for "{found_name}"',
                f"Owner rejected the match. Reason: {reason}" if reason else "Owner rejected the match.",
                self._metadata(match),
            )
        return match

    async def _load_for_action(
        self,
        store: MatchStore,
        registry: ItemRegistry,
        match_id: int,
        requesting_user_id: int,
    ) -> Tuple[Match, LostItem, Optional[FoundItem]]:
        if match_id is None:
            raise ValidationError("matchId is required")
        match = await store.get(match_id, for_update=True)
        if match is None:
            raise NotFoundError("Match not found", {"matchId": match_id})
        lost = await registry.get_lost_item(match.lost_item_id)
        if lost is None:
            raise IntegrityError(
                "Lost item referenced by match no longer exists",
                {"matchId": match.id, "lostItemId": match.lost_item_id},
            )
        if lost.owner_id != requesting_user_id:
            raise AuthorizationError("Only the owner of the lost item can act on this match")
        if not match.is_pending:
            raise InvalidStateError(match.status)
        found = await registry.get_found_item(match.found_item_id)
        return match, lost, found

    # ---- Queries ----

    async def list_for_user(self, user_id: int) -> List[Match]:
        async with self.session_factory() as session:
            return await MatchStore(session).list_by_user(user_id)

    async def list_for_lost_item(self, lost_item_id: int, requesting_user_id: int) -> List[Match]:
        async with self.session_factory() as session:
            lost = await ItemRegistry(session).get_lost_item(lost_item_id)
            if lost is None:
                raise NotFoundError("Lost item not found", {"lostItemId": lost_item_id})
            if lost.owner_id != requesting_user_id:
                raise AuthorizationError("Not authorized to view matches for this item")
            return await MatchStore(session).list_for_lost_item(lost_item_id)

    # ---- Notifications (best effort) ----

    @staticmethod
    def _metadata(match: Match) -> Dict[str, Any]:
        return {"matchId": match.id, "lostItemId": match.lost_item_id, "foundItemId": match.found_item_id}

    @staticmethod
    def _finder_of(match: Match, found: Optional[FoundItem]) -> Optional[int]:
        if match.finder_id is not None:
            return match.finder_id
        if found is not None and found.finder_id is not None:
            return found.finder_id
        return None

    async def _notify(self, user_id: int, event: str, title: str, message: str, metadata: Dict[str, Any]) -> None:
        try:
            await self.notifier.notify(user_id, event, title, message, metadata)
        except DependencyError as exc:
            logger.warning("Notification %s for user %s failed: %s", event, user_id, exc.message)
        except Exception:
            # Emitters are pluggable; nothing they raise may undo a committed match change.
            logger.exception("Notifier crashed sending %s to user %s", event, user_id)
