"""
Search and category filters for the stock listing.

The category filters are a separate rule set from the device
classification in ``classification.py``: ``lead`` and ``sheath`` only exist
here, and the ``crt`` filter accepts any ``hf-t`` name without the
precedence rules. Several active filters combine with OR.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from stok.domain.classification import (
    DeviceSummary,
    PrefixGroup,
    device_summaries,
    group_hierarchically,
    is_pacemaker,
)
from stok.domain.errors import ValidationError
from stok.domain.models import StockItem


def _has(*keywords: str) -> Callable[[str], bool]:
    def rule(name: str) -> bool:
        return any(k in name for k in keywords)
    return rule


# Rules receive the lower-cased material name
FILTER_RULES: Dict[str, Callable[[str], bool]] = {
    "lead": _has("solia", "sentus", "plexa"),
    "sheath": _has("safesheath", "adelante", "li-7", "li-8"),
    "pacemaker": is_pacemaker,
    "icd": lambda name: not is_pacemaker(name) and _has("vr-t", "dr-t")(name),
    "crt": _has("hf-t"),
}

FILTER_LABELS = {
    "lead": "Lead",
    "sheath": "Sheath",
    "pacemaker": "Pacemaker",
    "icd": "ICD",
    "crt": "CRT",
}


def normalize_filters(keys: Optional[Iterable[str]]) -> Set[str]:
    """Lower-cases filter keys and rejects unknown ones."""
    active = {str(k).strip().lower() for k in (keys or []) if str(k).strip()}
    unknown = sorted(active - set(FILTER_RULES))
    if unknown:
        raise ValidationError(f"Bilinmeyen filtre: {', '.join(unknown)}")
    return active


def matches_search(item: StockItem, search: Optional[str]) -> bool:
    text = (search or "").strip().lower()
    if not text:
        return True
    return (
        text in item.material_name.lower()
        or text in item.serial_lot_number.lower()
        or text in (item.ubb_code or "").lower()
    )


def matches_filters(item: StockItem, active: Set[str]) -> bool:
    if not active:
        return True
    name = item.material_name.lower()
    return any(FILTER_RULES[key](name) for key in active)


def filter_items(
    items: Sequence[StockItem],
    search: Optional[str] = None,
    filters: Optional[Iterable[str]] = None,
) -> List[StockItem]:
    """Items passing both the free-text search and the category filters."""
    active = normalize_filters(filters)
    return [i for i in items if matches_filters(i, active) and matches_search(i, search)]


@dataclass
class StockView:
    """Everything the stock listing shows for one search/filter state."""
    items: List[StockItem] = field(default_factory=list)
    groups: List[PrefixGroup] = field(default_factory=list)
    devices: List[DeviceSummary] = field(default_factory=list)
    total_quantity: int = 0
    item_count: int = 0
    next_expiry: Optional[str] = None


def build_stock_view(
    items: Sequence[StockItem],
    search: Optional[str] = None,
    filters: Optional[Iterable[str]] = None,
) -> StockView:
    filtered = filter_items(items, search, filters)
    expiries = [i.expiry_date for i in filtered if i.expiry_date]
    return StockView(
        items=filtered,
        groups=group_hierarchically(filtered),
        devices=device_summaries(filtered),
        total_quantity=sum(i.quantity for i in filtered),
        item_count=len(filtered),
        next_expiry=min(expiries) if expiries else None,
    )
