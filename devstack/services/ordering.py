"""Dense, zero-based manual ordering for projects and project images.

All writes are made on the caller's session and become visible when the
request transaction commits, so readers never see a duplicated or
missing position.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeVar

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from devstack.exceptions import DevStackError, ValidationError


class Positioned(Protocol):
    id: uuid.UUID
    position: int


P = TypeVar("P", bound=Positioned)


def apply_order(
    items: Sequence[P],
    ordered_ids: Sequence[uuid.UUID],
    unknown_error: Callable[[], DevStackError],
) -> list[P]:
    """Assign positions so ``ordered_ids`` come first, in the given order.

    ``items`` is the full owned set. Owned items not named keep their
    relative order after the named ones. Validation happens before any
    position is touched: an id outside the owned set raises
    ``unknown_error()``, a repeated id raises ValidationError.
    """
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("Duplicate ids in ordering", field="ids")

    by_id = {item.id: item for item in items}
    if any(item_id not in by_id for item_id in ordered_ids):
        raise unknown_error()

    named = set(ordered_ids)
    rest = sorted((item for item in items if item.id not in named), key=lambda i: i.position)
    result = [by_id[item_id] for item_id in ordered_ids] + rest

    for position, item in enumerate(result):
        if item.position != position:
            item.position = position
    return result


def compact(items: Sequence[P]) -> list[P]:
    """Renumber ``items`` to 0..n-1 keeping their current order."""
    result = sorted(items, key=lambda i: i.position)
    for position, item in enumerate(result):
        if item.position != position:
            item.position = position
    return result


async def close_gap(
    db: AsyncSession,
    model: Any,
    scope_column: InstrumentedAttribute[Any],
    scope_value: uuid.UUID,
    deleted_position: int,
) -> None:
    """Shift every sibling after ``deleted_position`` down by one."""
    await db.execute(
        update(model)
        .where(scope_column == scope_value, model.position > deleted_position)
        .values(position=model.position - 1)
        .execution_options(synchronize_session="fetch")
    )
