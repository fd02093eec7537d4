"""Pocket database adapter: bulk dataset provider.

The whole catalog is published as two JSON documents, one listing sets and
one listing every card. The card document is downloaded once per provider
activation; the catalog store keeps it and cards of a set are selected
locally from that copy.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx

from card_catalog.errors import SetListingError
from card_catalog.models import CardRecord, SetInfo

logger = logging.getLogger(__name__)

BASE_URL = "https://raw.githubusercontent.com/flibustier/pokemon-tcg-pocket-database/main/dist"


class PocketDatabaseProvider:
    """Provider reading the published Pocket card database dumps."""

    intrinsic_set_order = False

    def __init__(
        self,
        base_url: str = BASE_URL,
        sets_path: str = "/sets.json",
        cards_path: str = "/cards.json",
        image_base: Optional[str] = None,
        rate_limit_ms: int = 0,
        timeout_s: Optional[float] = None,
        user_agent: str = "CardCatalog/0.1",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._sets_path = sets_path
        self._cards_path = cards_path
        self._image_base = (image_base or f"{self._base_url}/images").rstrip("/")
        self._rate_limit = rate_limit_ms / 1000.0
        self._timeout = timeout_s
        self._user_agent = user_agent
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def name(self) -> str:
        return "pocket-database"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
            )
        return self._client

    async def _throttle(self) -> None:
        if self._rate_limit > 0:
            await asyncio.sleep(self._rate_limit)

    async def _get_json(self, path: str) -> Any:
        client = self._get_client()
        await self._throttle()
        logger.debug("Pocket database: GET %s", path)
        resp = await client.get(path)
        resp.raise_for_status()
        return resp.json()

    async def list_sets(self) -> List[SetInfo]:
        """Fetch the set document. Order is whatever the dump uses."""
        try:
            data = await self._get_json(self._sets_path)
            sets = [self._parse_set(item) for item in _flatten_sets(data)]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise SetListingError(f"Pocket database: failed to list sets: {exc}") from exc

        logger.info("Pocket database: found %d sets", len(sets))
        return sets

    async def fetch_full_dataset(self) -> List[Dict[str, Any]]:
        """Download the complete card document."""
        try:
            data = await self._get_json(self._cards_path)
        except (httpx.HTTPError, ValueError) as exc:
            raise SetListingError(f"Pocket database: failed to fetch cards: {exc}") from exc

        if isinstance(data, dict):
            data = data.get("cards", data.get("data", []))
        if not isinstance(data, list):
            raise SetListingError("Pocket database: card document is not a list")

        logger.info("Pocket database: downloaded %d cards", len(data))
        return data

    def select_cards(
        self,
        dataset: List[Dict[str, Any]],
        set_ids: Optional[Sequence[str]] = None,
    ) -> List[CardRecord]:
        """Normalize the cards of `set_ids` (all sets when None) from the dataset."""
        wanted = set(set_ids) if set_ids is not None else None
        cards: List[CardRecord] = []
        for raw in dataset:
            if not isinstance(raw, dict):
                logger.warning("Pocket database: skipping card entry %r: not an object", raw)
                continue
            # Set ids compare exactly, as SetIndex does
            if wanted is not None and str(raw.get("set", "")) not in wanted:
                continue
            try:
                cards.append(self._parse_card(raw))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(
                    "Pocket database: failed to parse card %s-%s: %s",
                    raw.get("set", "?"), raw.get("number", "?"), exc,
                )

        logger.info(
            "Pocket database: selected %d cards for %s",
            len(cards),
            ", ".join(sorted(wanted)) if wanted is not None else "all sets",
        )
        return cards

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _parse_set(self, raw: Dict[str, Any]) -> SetInfo:
        set_id = str(raw.get("code", raw.get("id", "")))
        if not set_id:
            raise KeyError("code")
        return SetInfo(
            id=set_id,
            name=_label(raw, "name", ("en", "eng")) or set_id,
            release_date=_parse_date(raw.get("releaseDate")),
        )

    def _parse_card(self, raw: Dict[str, Any]) -> CardRecord:
        set_id = str(raw["set"])
        number = raw.get("number", raw.get("localId", ""))
        local_id = str(number)
        card_id = str(raw.get("id") or f"{set_id}-{_pad_number(number)}")
        category = raw.get("type", raw.get("category"))
        return CardRecord(
            id=card_id,
            local_id=local_id,
            name=_label(raw, "name", ("eng", "en")),
            category=str(category) if category is not None else None,
            rarity=str(raw.get("rarity", "")),
            set_id=set_id,
            source=self.name,
            image_primary_ref=self._image_url(raw),
        )

    def _image_url(self, raw: Dict[str, Any]) -> Optional[str]:
        image = raw.get("image")
        if image and str(image).startswith("http"):
            return str(image)
        image_name = raw.get("imageName", image)
        if not image_name:
            return None
        return f"{self._image_base}/{str(image_name).lstrip('/')}"


def _flatten_sets(data: Any) -> Iterable[Dict[str, Any]]:
    """Accept either a flat set list or a mapping of series -> set list."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if "sets" in data:
            return data["sets"]
        flattened: List[Dict[str, Any]] = []
        for series_sets in data.values():
            flattened.extend(series_sets)
        return flattened
    raise TypeError(f"unexpected set document type {type(data).__name__}")


def _label(raw: Dict[str, Any], key: str, languages: Sequence[str]) -> str:
    """Read a plain field, or a language-keyed "label" object."""
    if raw.get(key):
        return str(raw[key])
    label = raw.get("label")
    if isinstance(label, dict):
        for lang in languages:
            if label.get(lang):
                return str(label[lang])
    return ""


def _pad_number(val: Any) -> str:
    try:
        return f"{int(val):03d}"
    except (ValueError, TypeError):
        return str(val)


def _parse_date(val: Any) -> Optional[date]:
    if not val:
        return None
    try:
        return date.fromisoformat(str(val)[:10])
    except ValueError:
        logger.debug("Pocket database: unparseable release date %r", val)
        return None
