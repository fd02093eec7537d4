"""Batched detail loader: expands stub cards into full records.

Stubs are split into consecutive chunks. Chunks run one after another;
inside a chunk every detail request runs concurrently and the loader waits
for all of them to settle before moving on.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, List, Optional, Sequence

from card_catalog.errors import DetailFetchError
from card_catalog.models import CardRecord, CardStub
from card_catalog.set_index import SetIndex

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
FetchDetail = Callable[[str], Awaitable[CardRecord]]


@dataclass
class LoadResult:
    """Records fetched by one loader run, plus the ids that failed."""

    cards: List[CardRecord] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)
    total: int = 0


def chunked(items: Sequence[CardStub], size: int) -> List[Sequence[CardStub]]:
    """Split `items` into consecutive slices of at most `size` elements."""
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchedDetailLoader:
    """Fetches card details chunk by chunk with bounded concurrency."""

    def __init__(
        self,
        fetch_detail: FetchDetail,
        batch_size: int = 100,
        max_concurrency: Optional[int] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        self._fetch_detail = fetch_detail
        self._batch_size = batch_size
        self._semaphore = asyncio.Semaphore(max_concurrency or batch_size)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def load(
        self,
        stubs: Sequence[CardStub],
        set_index: SetIndex,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> LoadResult:
        """Expand every stub; failed ids are dropped, never raised."""
        total = len(stubs)
        result = LoadResult(total=total)
        processed = 0

        for batch in chunked(stubs, self._batch_size):
            outcomes = await asyncio.gather(
                *(self._fetch_one(stub) for stub in batch),
                return_exceptions=True,
            )
            # gather keeps submission order, so cards stay in stub order
            for stub, outcome in zip(batch, outcomes):
                if isinstance(outcome, DetailFetchError):
                    logger.warning("Dropping card %s: %s", stub.id, outcome)
                    result.failed_ids.append(stub.id)
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    result.cards.append(_annotate(outcome, stub, set_index))

            processed += len(batch)
            logger.debug("Loaded details %d/%d", processed, total)
            if progress_callback:
                progress_callback(processed, total)

        if result.failed_ids:
            logger.warning(
                "Detail load finished with %d of %d cards dropped",
                len(result.failed_ids), total,
            )
        logger.info("Loaded %d card details", len(result.cards))
        return result

    async def _fetch_one(self, stub: CardStub) -> CardRecord:
        async with self._semaphore:
            return await self._fetch_detail(stub.id)


def _annotate(card: CardRecord, stub: CardStub, set_index: SetIndex) -> CardRecord:
    """Attach the expansion index, using the stub's set when the detail has none."""
    set_id = card.set_id or stub.set_id
    return replace(card, set_id=set_id, expansion_index=set_index.index_of(set_id))
