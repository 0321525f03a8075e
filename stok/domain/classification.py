"""
Device classification and hierarchical grouping of stock items.

This module holds the rules that place a stock item in a device category
(Pacemaker, ICD, CRT) and the grouping used by the stock listing:
prefix (first word of the name) → material (full name) → items.
All functions are pure; they never touch the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from stok.domain.models import StockItem


PACEMAKER = "pacemaker"
ICD = "icd"
CRT = "crt"

PACEMAKER_KEYWORDS = ("amvia sky", "endicos", "enitra", "edora")
ICD_KEYWORDS = ("vr-t", "dr-t")
CRT_KEYWORDS = ("hf-t",)

# (key, title, subtitle), in precedence order
DEVICE_CATEGORIES = (
    (PACEMAKER, "Pacemaker", "Amvia Sky, Endicos, Enitra, Edora"),
    (ICD, "ICD", "VR-T ve DR-T cihazları"),
    (CRT, "CRT", "HF-T cihazları"),
)


def _contains_any(name: str, keywords: Iterable[str]) -> bool:
    low = (name or "").lower()
    return any(k in low for k in keywords)


def is_pacemaker(material_name: str) -> bool:
    return _contains_any(material_name, PACEMAKER_KEYWORDS)


def is_icd(material_name: str) -> bool:
    return not is_pacemaker(material_name) and _contains_any(material_name, ICD_KEYWORDS)


def is_crt(material_name: str) -> bool:
    return (
        not is_pacemaker(material_name)
        and not _contains_any(material_name, ICD_KEYWORDS)
        and _contains_any(material_name, CRT_KEYWORDS)
    )


def classify_device(material_name: str) -> Optional[str]:
    """Returns the device category of a material name.

    The checks run in a fixed order and the first hit wins, so
    ``"Amvia Sky DR-T"`` is a pacemaker even though it contains ``dr-t``.

    Args:
        material_name: Free-text material name.

    Returns:
        ``'pacemaker'``, ``'icd'``, ``'crt'`` or ``None`` when the item is
        not a device.
    """
    if is_pacemaker(material_name):
        return PACEMAKER
    if _contains_any(material_name, ICD_KEYWORDS):
        return ICD
    if _contains_any(material_name, CRT_KEYWORDS):
        return CRT
    return None


@dataclass
class DeviceSummary:
    key: str
    title: str
    subtitle: str
    total_quantity: int = 0


def device_summaries(items: Iterable[StockItem]) -> List[DeviceSummary]:
    """Quantity totals per device category over ``items``.

    Always returns the three categories in precedence order, with zero
    totals when nothing matches.
    """
    out = [DeviceSummary(key, title, subtitle) for key, title, subtitle in DEVICE_CATEGORIES]
    by_key: Dict[str, DeviceSummary] = {s.key: s for s in out}
    for item in items:
        cat = classify_device(item.material_name)
        if cat is not None:
            by_key[cat].total_quantity += item.quantity
    return out


# -------------------------
# Hierarchical grouping
# -------------------------

@dataclass
class MaterialGroup:
    full_name: str
    total_quantity: int = 0
    items: List[StockItem] = field(default_factory=list)


@dataclass
class PrefixGroup:
    prefix: str
    total_quantity: int = 0
    materials: List[MaterialGroup] = field(default_factory=list)


def name_prefix(material_name: str) -> str:
    """First whitespace-delimited word of the name ("" for a blank name)."""
    parts = (material_name or "").split()
    return parts[0] if parts else ""


def _item_order(item: StockItem):
    # empty expiry sorts after any date; ISO strings compare chronologically
    return (item.expiry_date == "", item.expiry_date, item.serial_lot_number)


def group_hierarchically(items: Sequence[StockItem]) -> List[PrefixGroup]:
    """Groups items by prefix and by full material name.

    - material groups: exact ``material_name``; quantities summed
    - prefix groups: first word of the name; quantities summed
    - prefixes and materials sorted alphabetically, ignoring case
    - items sorted by expiry (empty last), then serial/lot number
    """
    materials: Dict[str, MaterialGroup] = {}
    for item in items:
        grp = materials.get(item.material_name)
        if grp is None:
            grp = materials[item.material_name] = MaterialGroup(item.material_name)
        grp.total_quantity += item.quantity
        grp.items.append(item)

    prefixes: Dict[str, PrefixGroup] = {}
    for grp in materials.values():
        grp.items.sort(key=_item_order)
        key = name_prefix(grp.full_name)
        pgrp = prefixes.get(key)
        if pgrp is None:
            pgrp = prefixes[key] = PrefixGroup(key)
        pgrp.total_quantity += grp.total_quantity
        pgrp.materials.append(grp)

    for pgrp in prefixes.values():
        pgrp.materials.sort(key=lambda g: (g.full_name.casefold(), g.full_name))
    return sorted(prefixes.values(), key=lambda g: (g.prefix.casefold(), g.prefix))
