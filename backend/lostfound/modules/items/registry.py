from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...errors import NotFoundError, ValidationError
from ...models.enums import FOUND_STATUSES, LOST_STATUSES
from ...models.found_item import FoundItem
from ...models.lost_item import LostItem
from ...models.timestamps import utcnow


class ItemRegistry:
    """Read/write access to lost and found item records within one session.

    Status setters exist for the verification cascade only; callers commit.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_lost_item(self, item_id: int) -> Optional[LostItem]:
        return await self.session.get(LostItem, item_id)

    async def get_found_item(self, item_id: int) -> Optional[FoundItem]:
        return await self.session.get(FoundItem, item_id)

    async def add_lost_item(
        self,
        owner_id: int,
        item_name: str,
        category: str,
        secret_identifier: str,
        lost_date: date | None = None,
        description: str | None = None,
        location: str | None = None,
    ) -> LostItem:
        item = LostItem(
            owner_id=owner_id,
            item_name=item_name,
            category=category,
            secret_identifier=secret_identifier,
            lost_date=lost_date,
            description=description,
            location=location,
        )
        self.session.add(item)
        await self.session.flush()
        return item

    async def add_found_item(
        self,
        finder_id: int | None,
        item_name: str,
        category: str,
        found_date: date | None = None,
        description: str | None = None,
        location: str | None = None,
    ) -> FoundItem:
        item = FoundItem(
            finder_id=finder_id,
            item_name=item_name,
            category=category,
            found_date=found_date,
            description=description,
            location=location,
        )
        self.session.add(item)
        await self.session.flush()
        return item

    async def set_lost_status(self, item_id: int, status: str) -> LostItem:
        if status not in LOST_STATUSES:
            raise ValidationError(f"Invalid lost item status: {status}")
        item = await self.get_lost_item(item_id)
        if item is None:
            raise NotFoundError("Lost item not found", {"lostItemId": item_id})
        item.status = status
        item.updated_at = utcnow()
        await self.session.flush()
        return item

    async def set_found_status(self, item_id: int, status: str) -> FoundItem:
        if status not in FOUND_STATUSES:
            raise ValidationError(f"Invalid found item status: {status}")
        item = await self.get_found_item(item_id)
        if item is None:
            raise NotFoundError("Found item not found", {"foundItemId": item_id})
        item.status = status
        item.updated_at = utcnow()
        await self.session.flush()
        return item

    async def list_open_lost_items(self) -> List[LostItem]:
        result = await self.session.execute(
            select(LostItem).where(LostItem.status == "lost").order_by(LostItem.id)
        )
        return list(result.scalars().all())

    async def list_open_found_items(self) -> List[FoundItem]:
        result = await self.session.execute(
            select(FoundItem).where(FoundItem.status == "found").order_by(FoundItem.id)
        )
        return list(result.scalars().all())

    async def lost_items_by_id(self, ids: Iterable[int]) -> Dict[int, LostItem]:
        ids = set(ids)
        if not ids:
            return {}
        result = await self.session.execute(select(LostItem).where(LostItem.id.in_(ids)))
        return {it.id: it for it in result.scalars()}

    async def found_items_by_id(self, ids: Iterable[int]) -> Dict[int, FoundItem]:
        ids = set(ids)
        if not ids:
            return {}
        result = await self.session.execute(select(FoundItem).where(FoundItem.id.in_(ids)))
        return {it.id: it for it in result.scalars()}
