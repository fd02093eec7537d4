"""Exception hierarchy for the card catalog.

Listing failures are fatal for the load that hit them, a failed detail fetch
only drops one card, and a rejected load leaves the catalog untouched.
"""

from __future__ import annotations

from typing import Optional


class CatalogError(Exception):
    """Base exception for all card catalog errors."""


class SetListingError(CatalogError):
    """A provider could not list its sets or the cards of a set."""

    def __init__(self, message: str, set_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.set_id = set_id


class DetailFetchError(CatalogError):
    """Fetching the details of a single card failed."""

    def __init__(self, card_id: str, reason: str = "") -> None:
        message = f"Failed to fetch card {card_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.card_id = card_id


class ConcurrentLoadError(CatalogError):
    """A load was requested while another one is still in flight."""


class EmptyResultError(CatalogError):
    """A view has no cards to show. Only raised on explicit request."""
