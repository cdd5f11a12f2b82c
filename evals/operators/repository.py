from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

from models.fixture_models import FixtureModel

RecordT = TypeVar("RecordT", bound=FixtureModel)


class EntityRepository(Generic[RecordT]):
    """
    Keyed collection for one entity kind.

    Records are kept in insertion order. ``get`` on an absent id returns
    None; ``update`` and ``delete`` on an absent id are no-ops.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._records: dict[str, RecordT] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._records

    def __iter__(self) -> Iterator[RecordT]:
        return iter(list(self._records.values()))

    def insert(self, record: RecordT) -> RecordT:
        self._records[record.id] = record
        return record

    def get(self, entity_id: str) -> RecordT | None:
        return self._records.get(entity_id)

    def get_all(self) -> list[RecordT]:
        return list(self._records.values())

    def items(self) -> list[tuple[str, RecordT]]:
        return list(self._records.items())

    def update(
        self, entity_id: str, mutator: Callable[[RecordT], None]
    ) -> RecordT | None:
        record = self._records.get(entity_id)
        if record is None:
            return None
        mutator(record)
        return record

    def delete(self, entity_id: str) -> bool:
        return self._records.pop(entity_id, None) is not None

    def clear(self) -> None:
        self._records.clear()

    def filter(self, predicate: Callable[[RecordT], bool]) -> list[RecordT]:
        return [record for record in self._records.values() if predicate(record)]


def children_of(
    repository: EntityRepository[RecordT],
    parent_field: str,
    parent_id: str,
) -> list[RecordT]:
    """
    Records whose ``parent_field`` equals ``parent_id``, in insertion order.

    Computed by scanning the owning foreign key; there is no separate index
    to keep in sync.
    """
    return repository.filter(lambda record: getattr(record, parent_field) == parent_id)


def children_by_order(
    repository: EntityRepository[RecordT],
    parent_field: str,
    parent_id: str,
) -> list[RecordT]:
    """Children sorted by ``order_index`` (stable for equal indices)."""
    return sorted(
        children_of(repository, parent_field, parent_id),
        key=lambda record: record.order_index,
    )
