"""Normalized data models for sets, cards, sort settings and catalog state.

Provider adapters produce these from their raw payloads; everything past the
adapter layer only ever sees these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple

from card_catalog.errors import EmptyResultError


@dataclass(frozen=True)
class SetInfo:
    """Metadata about a card set / expansion."""

    id: str  # e.g. "A1"
    name: str  # e.g. "Genetic Apex"
    release_date: Optional[date] = None
    expansion_index: int = -1  # position in the loaded set list


@dataclass(frozen=True)
class CardStub:
    """Minimal card reference returned by a set listing."""

    id: str
    local_id: str
    name: str = ""
    set_id: str = ""


@dataclass(frozen=True)
class CardRecord:
    """Provider-agnostic card record.

    `image_primary_ref` is tried first by a renderer; `image_fallback_ref`
    only after the primary fails to load, and may be absent.
    """

    id: str  # e.g. "A1-001"
    local_id: str  # collector number within the set, e.g. "001"
    name: str
    rarity: str
    set_id: str
    source: str  # Which provider produced this record
    category: Optional[str] = None  # "Pokemon", "Trainer", ...
    expansion_index: int = -1
    image_primary_ref: Optional[str] = None
    image_fallback_ref: Optional[str] = None

    @property
    def image_refs(self) -> List[str]:
        """Candidate image locations in preference order."""
        return [
            ref
            for ref in (self.image_primary_ref, self.image_fallback_ref)
            if ref
        ]


class SortKey(str, Enum):
    COLLECTOR = "collector"
    TYPE = "type"
    RARITY = "rarity"
    EXPANSION = "expansion"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    """Active sort settings. Replaced as a whole whenever the user changes them."""

    key: SortKey = SortKey.COLLECTOR
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, key: str = "collector", direction: str = "asc") -> "SortSpec":
        """Build a SortSpec from raw control values such as "rarity", "desc"."""
        return cls(
            key=SortKey(key.strip().lower()),
            direction=SortDirection(direction.strip().lower()),
        )

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC


class LoadStatus(str, Enum):
    IDLE = "idle"
    READY = "ready"
    EMPTY = "empty"  # loaded fine, nothing to show
    FAILED = "failed"


@dataclass(frozen=True)
class CatalogSnapshot:
    """Read-only copy of the catalog store."""

    provider: Optional[str]
    sets: Tuple[SetInfo, ...] = ()
    cards: Tuple[CardRecord, ...] = ()
    is_loading: bool = False
    has_dataset: bool = False


@dataclass
class LoadReport:
    """Outcome of one card load cycle."""

    status: LoadStatus
    total: int = 0
    loaded: int = 0
    failed_ids: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_ids)


@dataclass
class CatalogView:
    """Sorted, filtered cards ready for the renderer."""

    cards: List[CardRecord]
    status: LoadStatus
    search_term: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.cards

    def raise_for_empty(self) -> None:
        """Raise EmptyResultError when there is nothing to display."""
        if self.is_empty:
            if self.search_term:
                raise EmptyResultError(
                    f'No cards found matching "{self.search_term}"'
                )
            raise EmptyResultError("No cards found")
