from __future__ import annotations

from typing import List, Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...errors import DuplicateError, InvalidStateError, NotFoundError, ValidationError
from ...models.found_item import FoundItem
from ...models.lost_item import LostItem
from ...models.match import Match
from ...models.enums import TERMINAL_MATCH_STATUSES
from ...models.timestamps import utcnow

# Columns callers may change through update(); status has its own guarded path.
_UPDATABLE_FIELDS = {"notes"}


class MatchStore:
    """Persistence for Match rows within one AsyncSession.

    Uniqueness of (lost_item_id, found_item_id) is enforced by the database
    constraint ``uq_matches_lost_found``; ``create`` reports a lost race as
    ``DuplicateError``. Status leaves ``pending`` only through ``transition``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, lost_item: LostItem, found_item: FoundItem) -> Match:
        match = Match(
            lost_item_id=lost_item.id,
            found_item_id=found_item.id,
            loser_id=lost_item.owner_id,
            finder_id=found_item.finder_id,
            status="pending",
            notes=None,
        )
        self.session.add(match)
        try:
            await self.session.flush()
        except sa_exc.IntegrityError as exc:
            await self.session.rollback()
            if await self.find(lost_item.id, found_item.id) is not None:
                raise DuplicateError(lost_item.id, found_item.id) from exc
            raise
        return match

    async def find(self, lost_item_id: int, found_item_id: int) -> Optional[Match]:
        result = await self.session.execute(
            select(Match).where(
                Match.lost_item_id == lost_item_id,
                Match.found_item_id == found_item_id,
            )
        )
        return result.scalars().first()

    async def get(self, match_id: int, for_update: bool = False) -> Optional[Match]:
        return await self.session.get(Match, match_id, with_for_update=for_update or None)

    async def update(self, match_id: int, **fields) -> Match:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        match = await self.get(match_id)
        if match is None:
            raise NotFoundError("Match not found", {"matchId": match_id})
        for key, value in fields.items():
            setattr(match, key, value)
        match.updated_at = utcnow()
        await self.session.flush()
        return match

    async def transition(self, match: Match, to_status: str, notes: str | None = None) -> Match:
        """Move a pending match to a terminal status exactly once.

        The UPDATE is conditional on ``status = 'pending'``; if another writer
        finished the match first no row changes and ``InvalidStateError`` is
        raised with the status that writer left behind.
        """
        if to_status not in TERMINAL_MATCH_STATUSES:
            raise ValidationError(f"Invalid match transition target: {to_status}")
        values = {"status": to_status, "updated_at": utcnow()}
        if notes is not None:
            values["notes"] = notes
        result = await self.session.execute(
            update(Match)
            .where(Match.id == match.id, Match.status == "pending")
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(match)
        if result.rowcount == 0:
            raise InvalidStateError(match.status)
        return match

    async def list_by_user(self, user_id: int) -> List[Match]:
        result = await self.session.execute(
            select(Match)
            .where(or_(Match.loser_id == user_id, Match.finder_id == user_id))
            .order_by(Match.created_at.desc(), Match.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_lost_item(self, lost_item_id: int) -> List[Match]:
        result = await self.session.execute(
            select(Match)
            .where(Match.lost_item_id == lost_item_id)
            .order_by(Match.created_at.desc(), Match.id.desc())
        )
        return list(result.scalars().all())
