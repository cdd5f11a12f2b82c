"""
Sibling ordering shared by chapters, timelines, blocks and media assets.

``order_index`` is caller-assigned. ``reorder`` only rewrites the ids it is
given that belong to the parent; ``shift_after`` moves a whole tail of
siblings to make room for an insertion and may leave gaps.
"""

from __future__ import annotations

import logging

from models.fixture_models import utc_now
from operators.repository import EntityRepository, children_of

logger = logging.getLogger(__name__)


def _touch(record) -> None:
    if hasattr(record, "modified_date"):
        record.modified_date = utc_now()


def reorder(
    repository: EntityRepository,
    parent_field: str,
    parent_id: str,
    ordered_ids: list[str],
) -> int:
    """
    Set each listed sibling's ``order_index`` to its position in ``ordered_ids``.

    Ids that are missing or belong to another parent are skipped. Siblings
    left out of the list keep their previous index.

    Returns:
        Number of records reindexed
    """
    count = 0
    for position, entity_id in enumerate(ordered_ids):
        record = repository.get(entity_id)
        if record is None or getattr(record, parent_field) != parent_id:
            continue
        record.order_index = position
        _touch(record)
        count += 1

    logger.debug(
        "reorder kind=%s parent=%s requested=%d reindexed=%d",
        repository.kind, parent_id, len(ordered_ids), count,
    )
    return count


def shift_after(
    repository: EntityRepository,
    parent_field: str,
    parent_id: str,
    threshold: int,
    delta: int,
    field: str = "order_index",
) -> int:
    """
    Add ``delta`` to ``field`` of every sibling whose value is >= ``threshold``.

    Returns:
        Number of records shifted
    """
    count = 0
    for record in children_of(repository, parent_field, parent_id):
        value = getattr(record, field)
        if value >= threshold:
            setattr(record, field, value + delta)
            _touch(record)
            count += 1

    logger.debug(
        "shift_after kind=%s parent=%s field=%s threshold=%d delta=%d shifted=%d",
        repository.kind, parent_id, field, threshold, delta, count,
    )
    return count


def next_order_index(
    repository: EntityRepository,
    parent_field: str,
    parent_id: str,
) -> int:
    """Max sibling ``order_index`` + 1, or 0 when the parent has no children."""
    siblings = children_of(repository, parent_field, parent_id)
    if not siblings:
        return 0
    return max(record.order_index for record in siblings) + 1
