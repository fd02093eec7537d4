"""Sort and filter engine over normalized card records.

Every call re-sorts from scratch; nothing is cached between calls. Each sort
key is an ordered chain of comparators applied until one is non-zero.
"""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from card_catalog.models import CardRecord, SortKey, SortSpec

NO_RARITY = "None"
UNKNOWN_RARITY_RANK = 999

RARITY_RANKS: Dict[str, int] = {
    "One Diamond": 1,
    "Two Diamond": 2,
    "Three Diamond": 3,
    "Four Diamond": 4,
    "One Star": 5,
    "Two Star": 6,
    "Three Star": 7,
    "One Shiny": 8,
    "Two Shiny": 9,
    "Crown": 10,
}

Comparator = Callable[[CardRecord, CardRecord, Mapping[str, int]], int]

_LEADING_DIGITS = re.compile(r"\s*([+-]?\d+)")


def local_id_number(local_id: Optional[str]) -> int:
    """Numeric value of a collector number; 0 when it has no leading digits."""
    if not local_id:
        return 0
    match = _LEADING_DIGITS.match(local_id)
    return int(match.group(1)) if match else 0


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _by_expansion(a: CardRecord, b: CardRecord, ranks: Mapping[str, int]) -> int:
    return _cmp(a.expansion_index, b.expansion_index)


def _by_local_id(a: CardRecord, b: CardRecord, ranks: Mapping[str, int]) -> int:
    return _cmp(local_id_number(a.local_id), local_id_number(b.local_id))


def _by_category(a: CardRecord, b: CardRecord, ranks: Mapping[str, int]) -> int:
    return _cmp(a.category or "", b.category or "")


def _by_rarity_rank(a: CardRecord, b: CardRecord, ranks: Mapping[str, int]) -> int:
    return _cmp(
        ranks.get(a.rarity, UNKNOWN_RARITY_RANK),
        ranks.get(b.rarity, UNKNOWN_RARITY_RANK),
    )


def _by_id(a: CardRecord, b: CardRecord, ranks: Mapping[str, int]) -> int:
    return _cmp(a.id, b.id)


COMPARATOR_CHAINS: Dict[SortKey, Tuple[Comparator, ...]] = {
    SortKey.COLLECTOR: (_by_expansion, _by_local_id, _by_id),
    SortKey.TYPE: (_by_category, _by_expansion, _by_local_id, _by_id),
    SortKey.RARITY: (_by_rarity_rank, _by_local_id, _by_expansion, _by_id),
    SortKey.EXPANSION: (_by_expansion, _by_local_id, _by_id),
}


def compare_cards(
    a: CardRecord,
    b: CardRecord,
    spec: SortSpec,
    rarity_ranks: Mapping[str, int] = RARITY_RANKS,
) -> int:
    """Three-way comparison of two cards under `spec`."""
    # Cards without a rarity go last whatever the direction
    a_none = a.rarity == NO_RARITY
    b_none = b.rarity == NO_RARITY
    if a_none or b_none:
        return _cmp(a_none, b_none)

    result = 0
    for comparator in COMPARATOR_CHAINS[spec.key]:
        result = comparator(a, b, rarity_ranks)
        if result:
            break
    return -result if spec.descending else result


def sort_cards(
    cards: Sequence[CardRecord],
    spec: SortSpec,
    rarity_ranks: Mapping[str, int] = RARITY_RANKS,
) -> List[CardRecord]:
    """Return a new list of `cards` ordered by `spec`."""
    return sorted(
        cards,
        key=cmp_to_key(lambda a, b: compare_cards(a, b, spec, rarity_ranks)),
    )


def normalize_search_term(search_term: Optional[str]) -> str:
    return (search_term or "").strip().lower()


def filter_cards(
    cards: Sequence[CardRecord], search_term: Optional[str]
) -> List[CardRecord]:
    """Keep cards whose name contains the term, ignoring case."""
    term = normalize_search_term(search_term)
    if not term:
        return list(cards)
    return [card for card in cards if term in (card.name or "").lower()]


def build_view(
    cards: Sequence[CardRecord],
    spec: SortSpec,
    search_term: Optional[str] = None,
    rarity_ranks: Mapping[str, int] = RARITY_RANKS,
) -> List[CardRecord]:
    """Filter by name, then sort."""
    return sort_cards(filter_cards(cards, search_term), spec, rarity_ranks)
