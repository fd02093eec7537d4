"""Catalog store: the single owner of the active provider's catalog state."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional

from card_catalog.errors import ConcurrentLoadError
from card_catalog.models import CardRecord, CatalogSnapshot, SetInfo

logger = logging.getLogger(__name__)


class CatalogStore:
    """Holds sets, cards and the bulk dataset cache of the active provider.

    All mutation goes through the methods below. `is_loading` guards against
    overlapping loads: a second load is rejected, not queued.
    """

    def __init__(self) -> None:
        self._provider: Optional[str] = None
        self._sets: List[SetInfo] = []
        self._cards: List[CardRecord] = []
        self._raw_dataset: Optional[Any] = None
        self._loading = False

    @property
    def provider(self) -> Optional[str]:
        return self._provider

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def sets(self) -> List[SetInfo]:
        return list(self._sets)

    @property
    def cards(self) -> List[CardRecord]:
        return list(self._cards)

    @property
    def raw_dataset(self) -> Optional[Any]:
        return self._raw_dataset

    def begin_load(self) -> None:
        """Take the load guard, or raise ConcurrentLoadError if it is held."""
        if self._loading:
            raise ConcurrentLoadError("A catalog load is already in progress")
        self._loading = True

    def end_load(self) -> None:
        self._loading = False

    @contextmanager
    def loading(self) -> Iterator["CatalogStore"]:
        """Hold the load guard for the duration of the block."""
        self.begin_load()
        try:
            yield self
        finally:
            self.end_load()

    def commit_sets(self, sets: Iterable[SetInfo]) -> None:
        self._sets = list(sets)
        logger.debug("Committed %d sets", len(self._sets))

    def commit_cards(self, records: Iterable[CardRecord]) -> None:
        """Replace the card list wholesale."""
        self._cards = list(records)
        logger.debug("Committed %d cards", len(self._cards))

    def cache_dataset(self, dataset: Any) -> None:
        """Store the bulk dataset. Written at most once per provider activation."""
        if self._raw_dataset is not None:
            raise RuntimeError(
                f"Dataset for provider '{self._provider}' is already cached"
            )
        self._raw_dataset = dataset

    def clear(self, provider: Optional[str] = None) -> None:
        """Drop all catalog state and make `provider` the active one."""
        logger.info(
            "Clearing catalog (%s -> %s)", self._provider or "none", provider or "none"
        )
        self._provider = provider
        self._sets = []
        self._cards = []
        self._raw_dataset = None

    def snapshot(self) -> CatalogSnapshot:
        """Return a read-only copy of the current state."""
        return CatalogSnapshot(
            provider=self._provider,
            sets=tuple(self._sets),
            cards=tuple(self._cards),
            is_loading=self._loading,
            has_dataset=self._raw_dataset is not None,
        )
