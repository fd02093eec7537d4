"""Capability protocols for catalog providers and the provider registry."""

from __future__ import annotations

import importlib
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, runtime_checkable

from card_catalog.models import CardRecord, CardStub, SetInfo


@runtime_checkable
class CatalogProvider(Protocol):
    """Protocol shared by every catalog provider.

    Each provider knows how to talk to one upstream source and normalize
    its output into SetInfo / CardRecord. Providers return data to the
    caller and never touch the catalog store themselves.
    """

    # True when list_sets() already returns sets in publication order
    intrinsic_set_order: bool

    @property
    def name(self) -> str:
        """Human-readable provider name for logging."""
        ...

    async def list_sets(self) -> List[SetInfo]:
        """Return all card sets available from this source."""
        ...

    async def close(self) -> None:
        """Clean up any resources (HTTP clients, etc.)."""
        ...


@runtime_checkable
class DetailProvider(CatalogProvider, Protocol):
    """Provider that lists stubs per set and serves card details one by one."""

    async def list_set_cards(self, set_id: str) -> List[CardStub]:
        """Return stub records for a set; an empty list is a valid result."""
        ...

    async def fetch_card_detail(self, card_id: str) -> CardRecord:
        """Return one normalized card or raise DetailFetchError."""
        ...


@runtime_checkable
class BulkDatasetProvider(CatalogProvider, Protocol):
    """Provider that ships its whole card catalog as one document."""

    async def fetch_full_dataset(self) -> List[Dict[str, Any]]:
        """Download the raw card dataset."""
        ...

    def select_cards(
        self,
        dataset: List[Dict[str, Any]],
        set_ids: Optional[Sequence[str]] = None,
    ) -> List[CardRecord]:
        """Normalize the cards of the given sets from an already fetched dataset."""
        ...


# Provider registry: provider name -> qualified class name
_PROVIDER_REGISTRY: Dict[str, str] = {
    "tcgdex": "card_catalog.providers.tcgdex.TcgdexProvider",
    "pocket-database": "card_catalog.providers.pocket_database.PocketDatabaseProvider",
}


def get_provider_class(name: str) -> Type[CatalogProvider]:
    """Import and return the provider class registered under `name`."""
    qualified = _PROVIDER_REGISTRY.get(name)
    if qualified is None:
        raise ValueError(
            f"Unknown provider '{name}'. Available: {list(_PROVIDER_REGISTRY.keys())}"
        )
    module_path, class_name = qualified.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def known_providers() -> set[str]:
    """Return the set of registered provider names."""
    return set(_PROVIDER_REGISTRY.keys())
