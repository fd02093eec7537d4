"""Ordering of the active provider's sets and expansion index lookup."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, Iterator, List, Sequence

from card_catalog.models import SetInfo

logger = logging.getLogger(__name__)


def order_sets(sets: Iterable[SetInfo], intrinsic_order: bool) -> List[SetInfo]:
    """Return the sets in display order with `expansion_index` assigned.

    Providers with an intrinsic order keep it. Otherwise sets are sorted by
    release date; undated sets go last and ties keep their input order.
    """
    unique: Dict[str, SetInfo] = {}
    for s in sets:
        if s.id in unique:
            logger.warning("Duplicate set id %s, keeping the first entry", s.id)
            continue
        unique[s.id] = s

    ordered = list(unique.values())
    if not intrinsic_order:
        ordered.sort(key=_release_sort_key)

    return [replace(s, expansion_index=i) for i, s in enumerate(ordered)]


def _release_sort_key(s: SetInfo) -> tuple[bool, date]:
    return (s.release_date is None, s.release_date or date.min)


class SetIndex:
    """Lookup from set id to expansion index over an ordered set list."""

    def __init__(self, sets: Sequence[SetInfo]) -> None:
        self._sets = tuple(sets)
        self._positions = {s.id: i for i, s in enumerate(self._sets)}

    @classmethod
    def build(cls, sets: Iterable[SetInfo], intrinsic_order: bool) -> "SetIndex":
        return cls(order_sets(sets, intrinsic_order))

    def index_of(self, set_id: str) -> int:
        """Expansion index of `set_id`, or -1 when the set is not loaded."""
        return self._positions.get(set_id, -1)

    def get(self, set_id: str) -> SetInfo | None:
        idx = self.index_of(set_id)
        return self._sets[idx] if idx >= 0 else None

    @property
    def sets(self) -> List[SetInfo]:
        return list(self._sets)

    @property
    def ids(self) -> List[str]:
        return [s.id for s in self._sets]

    def __contains__(self, set_id: object) -> bool:
        return set_id in self._positions

    def __len__(self) -> int:
        return len(self._sets)

    def __iter__(self) -> Iterator[SetInfo]:
        return iter(self._sets)
