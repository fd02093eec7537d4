"""TCGdex REST adapter: per-card detail provider for TCG Pocket.

Sets come from the series endpoint in publication order, each set lists
stub cards, and every card's details are fetched individually.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from card_catalog.errors import DetailFetchError, SetListingError
from card_catalog.models import CardRecord, CardStub, SetInfo

logger = logging.getLogger(__name__)

BASE_URL = "https://api.tcgdex.net/v2/en"


class TcgdexProvider:
    """Provider using the api.tcgdex.net v2 endpoints."""

    intrinsic_set_order = True

    def __init__(
        self,
        base_url: str = BASE_URL,
        series_id: str = "tcgp",
        image_variant: str = "high",
        image_format: str = "webp",
        image_fallback_format: Optional[str] = "png",
        rate_limit_ms: int = 0,
        timeout_s: Optional[float] = None,
        user_agent: str = "CardCatalog/0.1",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._series_id = series_id
        self._image_variant = image_variant
        self._image_format = image_format
        self._image_fallback_format = image_fallback_format
        self._rate_limit = rate_limit_ms / 1000.0
        self._timeout = timeout_s
        self._user_agent = user_agent
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def name(self) -> str:
        return "tcgdex"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            )
        return self._client

    async def _throttle(self) -> None:
        if self._rate_limit > 0:
            await asyncio.sleep(self._rate_limit)

    async def _get_json(self, path: str) -> Any:
        client = self._get_client()
        await self._throttle()
        logger.debug("TCGdex: GET %s", path)
        resp = await client.get(path)
        resp.raise_for_status()
        return resp.json()

    async def list_sets(self) -> List[SetInfo]:
        """Fetch the sets of the configured series, in publication order."""
        try:
            data = await self._get_json(f"/series/{self._series_id}")
            raw_sets = data.get("sets", [])
            sets = [
                SetInfo(
                    id=str(item["id"]),
                    name=str(item.get("name", item["id"])),
                    release_date=_parse_date(item.get("releaseDate")),
                )
                for item in raw_sets
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise SetListingError(
                f"TCGdex: failed to list sets for series {self._series_id}: {exc}"
            ) from exc

        logger.info("TCGdex: series %s -> %d sets", self._series_id, len(sets))
        return sets

    async def list_set_cards(self, set_id: str) -> List[CardStub]:
        """Fetch the stub card list of one set."""
        try:
            data = await self._get_json(f"/sets/{set_id}")
            stubs = [
                CardStub(
                    id=str(raw["id"]),
                    local_id=str(raw.get("localId", "")),
                    name=str(raw.get("name", "")),
                    set_id=set_id,
                )
                for raw in data.get("cards") or []
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise SetListingError(
                f"TCGdex: failed to list cards of set {set_id}: {exc}", set_id=set_id
            ) from exc

        logger.info("TCGdex: set %s -> %d cards", set_id, len(stubs))
        return stubs

    async def fetch_card_detail(self, card_id: str) -> CardRecord:
        """Fetch and normalize one card document."""
        try:
            raw = await self._get_json(f"/cards/{card_id}")
            return self._parse_card(raw)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise DetailFetchError(card_id, str(exc)) from exc

    def image_refs(self, image_base: Optional[str]) -> tuple[Optional[str], Optional[str]]:
        """Build (primary, fallback) asset locations from an image base reference."""
        if not image_base:
            return None, None
        base = image_base.rstrip("/")
        primary = f"{base}/{self._image_variant}.{self._image_format}"
        fallback = None
        if self._image_fallback_format and self._image_fallback_format != self._image_format:
            fallback = f"{base}/{self._image_variant}.{self._image_fallback_format}"
        return primary, fallback

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _parse_card(self, raw: Dict[str, Any]) -> CardRecord:
        set_info = raw.get("set") or {}
        primary, fallback = self.image_refs(raw.get("image"))
        category = raw.get("category")
        return CardRecord(
            id=str(raw["id"]),
            local_id=str(raw.get("localId", "")),
            name=str(raw.get("name", "")),
            category=str(category) if category is not None else None,
            rarity=str(raw.get("rarity", "")),
            set_id=str(set_info.get("id", "")),
            source=self.name,
            image_primary_ref=primary,
            image_fallback_ref=fallback,
        )


def _parse_date(val: Any) -> Optional[date]:
    if not val:
        return None
    try:
        return date.fromisoformat(str(val)[:10])
    except ValueError:
        logger.debug("TCGdex: unparseable release date %r", val)
        return None
