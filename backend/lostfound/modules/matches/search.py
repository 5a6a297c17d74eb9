from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Tuple, Union

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models.found_item import FoundItem
from ...models.lost_item import LostItem

DEFAULT_WINDOW_DAYS = 7

AnyItem = Union[LostItem, FoundItem]


def item_kind(item: AnyItem) -> str:
    if isinstance(item, LostItem):
        return "lost"
    if isinstance(item, FoundItem):
        return "found"
    raise TypeError(f"Not a lost or found item: {item!r}")


def _date_from_item(it: AnyItem) -> date:
    own = it.lost_date if isinstance(it, LostItem) else it.found_date
    if own is not None:
        return own
    if it.created_at is not None:
        return it.created_at.date()
    return date.today()


def match_window(item: AnyItem, days: int = DEFAULT_WINDOW_DAYS) -> Tuple[date, date]:
    """Inclusive [start, end] date window centred on the item's own date."""
    anchor = _date_from_item(item)
    delta = timedelta(days=days)
    return anchor - delta, anchor + delta


def _candidate_query(item: AnyItem, days: int):
    name = (item.item_name or "").strip()
    start, end = match_window(item, days)
    if isinstance(item, LostItem):
        target, target_date, open_status = FoundItem, FoundItem.found_date, "found"
    else:
        target, target_date, open_status = LostItem, LostItem.lost_date, "lost"

    return (
        select(target)
        .where(target.category == item.category)
        .where(target.status == open_status)
        .where(
            or_(
                and_(target_date.isnot(None), target_date.between(start, end)),
                and_(
                    target_date.is_(None),
                    target.created_at.between(
                        datetime.combine(start, datetime.min.time()),
                        datetime.combine(end, datetime.max.time()),
                    ),
                ),
            )
        )
        # autoescape: % and _ in user text are literal characters, not wildcards
        .where(target.item_name.icontains(name, autoescape=True))
        .order_by(target.id)
    )


async def find_candidates(session: AsyncSession, item: AnyItem, days: int = DEFAULT_WINDOW_DAYS) -> List[AnyItem]:
    """Return open items of the opposite kind that could be the same object.

    A candidate shares the category exactly, is dated inside the symmetric
    window around ``item`` and has a name containing ``item``'s name
    (case-insensitive, literal substring). Items without a name have none.
    """
    item_kind(item)
    if not (item.item_name or "").strip():
        return []
    result = await session.execute(_candidate_query(item, days))
    return list(result.scalars().all())
