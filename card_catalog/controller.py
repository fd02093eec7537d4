"""Catalog controller: provider switching, card loading and views.

Coordinates one provider at a time:
1. Switch provider (reset the store, list and order sets)
2. Load cards for one set or all sets (batched details or cached dataset)
3. Commit the result to the store
4. Build sorted / filtered views for the renderer
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from card_catalog.adapters import (
    BulkDatasetProvider,
    CatalogProvider,
    DetailProvider,
    get_provider_class,
)
from card_catalog.config import AppConfig, ProviderConfig
from card_catalog.errors import CatalogError, SetListingError
from card_catalog.loader import BatchedDetailLoader, ProgressCallback
from card_catalog.models import (
    CardStub,
    CatalogView,
    LoadReport,
    LoadStatus,
    SetInfo,
    SortSpec,
)
from card_catalog.set_index import SetIndex
from card_catalog.sorting import build_view
from card_catalog.store import CatalogStore

logger = logging.getLogger(__name__)


class CatalogController:
    """Owns the active provider and routes every catalog mutation through the store."""

    def __init__(self, config: AppConfig, store: Optional[CatalogStore] = None) -> None:
        self._config = config
        self._store = store or CatalogStore()
        self._provider: Optional[CatalogProvider] = None
        self._set_index = SetIndex([])
        self._status = LoadStatus.IDLE

    @property
    def store(self) -> CatalogStore:
        return self._store

    @property
    def provider(self) -> Optional[CatalogProvider]:
        return self._provider

    @property
    def set_index(self) -> SetIndex:
        return self._set_index

    @property
    def status(self) -> LoadStatus:
        return self._status

    async def setup(self) -> List[SetInfo]:
        """Activate the provider selected in the config."""
        return await self.switch_provider(self._config.provider)

    async def switch_provider(self, name: str) -> List[SetInfo]:
        """Reset the catalog and load the set list of provider `name`.

        Rejected with ConcurrentLoadError while a load is in flight; the
        catalog is left untouched in that case.
        """
        cls = get_provider_class(name)
        prov_cfg = self._config.provider_config(name)

        with self._store.loading():
            await self._close_provider()
            self._store.clear(name)
            self._set_index = SetIndex([])
            self._provider = _instantiate_provider(cls, prov_cfg, self._config)
            logger.info("Switched to provider %s", name)

            try:
                sets = await self._provider.list_sets()
            except SetListingError as exc:
                self._status = LoadStatus.FAILED
                logger.error("Failed to load sets from %s: %s", name, exc)
                raise

            self._set_index = SetIndex.build(sets, self._provider.intrinsic_set_order)
            self._store.commit_sets(self._set_index.sets)
            self._status = LoadStatus.IDLE

        logger.info("Provider %s: %d sets available", name, len(self._set_index))
        return self._set_index.sets

    async def load_cards(
        self,
        set_id: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> LoadReport:
        """Load the cards of `set_id`, or of every set when None.

        The committed card list is replaced by the result. Listing failures
        propagate as SetListingError and leave the previous cards in place.
        """
        provider = self._require_provider()

        with self._store.loading():
            try:
                set_ids = self._resolve_set_ids(set_id)
                if isinstance(provider, BulkDatasetProvider):
                    report = await self._load_from_dataset(
                        provider, set_ids if set_id is not None else None, progress_callback
                    )
                elif isinstance(provider, DetailProvider):
                    report = await self._load_via_details(provider, set_ids, progress_callback)
                else:
                    raise CatalogError(
                        f"Provider {provider.name} supports neither card details nor a dataset"
                    )
            except SetListingError as exc:
                self._status = LoadStatus.FAILED
                logger.error("Failed to load cards: %s", exc)
                raise

        self._status = report.status
        if report.status is LoadStatus.EMPTY:
            logger.info("No cards found for %s", set_id or "any set")
        return report

    def view(
        self,
        sort_spec: Optional[SortSpec] = None,
        search_term: Optional[str] = None,
    ) -> CatalogView:
        """Sorted, name-filtered view of the committed cards."""
        snapshot = self._store.snapshot()
        cards = build_view(snapshot.cards, sort_spec or SortSpec(), search_term)
        status = self._status
        if status is LoadStatus.READY and not cards:
            status = LoadStatus.EMPTY
        return CatalogView(cards=cards, status=status, search_term=(search_term or "").strip())

    async def close(self) -> None:
        await self._close_provider()

    async def __aenter__(self) -> "CatalogController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_provider(self) -> CatalogProvider:
        if self._provider is None:
            raise CatalogError("No provider is active; call switch_provider() first")
        return self._provider

    def _resolve_set_ids(self, set_id: Optional[str]) -> List[str]:
        if set_id is None:
            return self._set_index.ids
        if set_id not in self._set_index:
            raise SetListingError(f"Unknown set {set_id}", set_id=set_id)
        return [set_id]

    async def _load_via_details(
        self,
        provider: DetailProvider,
        set_ids: List[str],
        progress_callback: Optional[ProgressCallback],
    ) -> LoadReport:
        stubs: List[CardStub] = []
        for sid in set_ids:
            stubs.extend(await provider.list_set_cards(sid))

        if not stubs:
            self._store.commit_cards([])
            return LoadReport(status=LoadStatus.EMPTY)

        batch_size = self._config.provider_config(provider.name).batch_size
        loader = BatchedDetailLoader(provider.fetch_card_detail, batch_size=batch_size)
        result = await loader.load(stubs, self._set_index, progress_callback)

        self._store.commit_cards(result.cards)
        return LoadReport(
            status=LoadStatus.READY if result.cards else LoadStatus.EMPTY,
            total=result.total,
            loaded=len(result.cards),
            failed_ids=result.failed_ids,
        )

    async def _load_from_dataset(
        self,
        provider: BulkDatasetProvider,
        set_ids: Optional[List[str]],
        progress_callback: Optional[ProgressCallback],
    ) -> LoadReport:
        dataset = self._store.raw_dataset
        if dataset is None:
            dataset = await provider.fetch_full_dataset()
            self._store.cache_dataset(dataset)
        else:
            logger.debug("Using cached dataset for %s", provider.name)

        cards = [
            replace(card, expansion_index=self._set_index.index_of(card.set_id))
            for card in provider.select_cards(dataset, set_ids)
        ]
        if progress_callback:
            progress_callback(len(cards), len(cards))

        self._store.commit_cards(cards)
        return LoadReport(
            status=LoadStatus.READY if cards else LoadStatus.EMPTY,
            total=len(cards),
            loaded=len(cards),
        )

    async def _close_provider(self) -> None:
        if self._provider is None:
            return
        try:
            await self._provider.close()
        except Exception as exc:
            logger.warning("Failed to close provider %s: %s", self._provider.name, exc)
        self._provider = None


def _instantiate_provider(
    cls: type, cfg: ProviderConfig, config: AppConfig
) -> CatalogProvider:
    """Create a provider instance with the config values its constructor accepts."""
    available = {
        "base_url": cfg.base_url,
        "rate_limit_ms": cfg.rate_limit_ms,
        "series_id": cfg.series_id,
        "image_variant": cfg.image_variant,
        "image_format": cfg.image_format,
        "image_fallback_format": cfg.image_fallback_format,
        "sets_path": cfg.sets_path,
        "cards_path": cfg.cards_path,
        "image_base": cfg.image_base,
        "timeout_s": config.timeout_s,
        "user_agent": config.user_agent,
    }
    kwargs = {}
    if hasattr(cls.__init__, "__code__"):
        params = cls.__init__.__code__.co_varnames
        kwargs = {k: v for k, v in available.items() if k in params}
    return cls(**kwargs)
