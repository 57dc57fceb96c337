"""Curated demo palettes served by ``GET /v1/palettes``."""

from __future__ import annotations

import copy

_PALETTES: list[dict] = [
    {
        "id": "warm-1",
        "name": "Warm Neutrals",
        "brand": "demo",
        "colors": ["#f0e68c", "#d2b48c", "#8b4513"],
    },
    {
        "id": "modern-1",
        "name": "Modern Blues",
        "brand": "demo",
        "colors": ["#c0d6e4", "#90a4b2", "#2f4f4f"],
    },
]


def list_palettes(brand: str | None = None) -> list[dict]:
    """Return the curated palettes, optionally restricted to one brand.

    Args:
        brand: Exact brand name to keep.  ``None`` or empty returns all.

    Returns:
        Fresh copies of the palette dictionaries in catalogue order.
    """
    palettes = copy.deepcopy(_PALETTES)
    if brand:
        palettes = [p for p in palettes if p["brand"] == brand]
    return palettes
