"""Variation driver: one source image, one edit per colour.

:func:`produce_variations` takes a source image resolved once by the caller and
calls the provider's edit endpoint ``count`` times with that *same* payload.
Colours are taken cyclically from the caller's list, so ``["A", "B", "C"]``
with a count of 5 yields ``A, B, C, A, B``.

Calls are sequential and fail fast: the first failing edit aborts the whole
run and no partial set is returned.

Defaults
--------
Two callers share the driver with different policies:

============  ==========================================  ==========================
Caller        Default colours                             Default count
============  ==========================================  ==========================
recolor       ``#f0e68c #ffffff #dcdcdc #b0c4de``         ``len(colours)``
visualize     ``#f0e68c #8b4513 #ffffff #c0d6e4``         ``min(6, len(colours))``
============  ==========================================  ==========================

Count Leniency
--------------
A requested count is used only when it is a positive integer (``3`` or
``3.0``).  Anything else, including ``0``, negatives, strings, booleans, and
``None``, silently falls back to the default count instead of failing.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from colorforge.core.image_source import ImagePayload
from colorforge.core.provider_client import TransformationRequest, TransformationResult

logger = logging.getLogger(__name__)

RECOLOR_DEFAULT_COLORS: tuple[str, ...] = ("#f0e68c", "#ffffff", "#dcdcdc", "#b0c4de")
VISUALIZE_DEFAULT_PALETTES: tuple[str, ...] = ("#f0e68c", "#8b4513", "#ffffff", "#c0d6e4")
VISUALIZE_MAX_DEFAULT_VARIATIONS = 6

DEFAULT_AREAS = "main surfaces"
SQUARE_FEET_PER_GALLON = 300
DEFAULT_SQUARE_FEET = 1000


class Transformer(Protocol):
    """Anything with the provider client's ``transform`` signature."""

    def transform(
        self, request: TransformationRequest, *, api_key: str
    ) -> TransformationResult: ...


@dataclass(frozen=True)
class Variation:
    """One output of the driver.

    Attributes:
        attribute: Colour (or palette value) applied for this output.
        result: The provider's normalised result.
    """

    attribute: str
    result: TransformationResult


# ---------------------------------------------------------------------------
# Policy helpers.
# ---------------------------------------------------------------------------


def resolve_attributes(values: Sequence[str] | None, default: Sequence[str]) -> list[str]:
    """Return *values* as a list, or *default* when absent or empty."""
    if values:
        return list(values)
    return list(default)


def resolve_variation_count(value: Any, default: int) -> int:
    """Apply the lenient count policy.

    Args:
        value: Count as supplied by the caller (any JSON value).
        default: Count to use when *value* is not a positive integer.

    Returns:
        The requested count, or *default*.
    """
    # bool is an int subclass; JSON true must not become 1.
    if isinstance(value, bool):
        return default
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, float) and value.is_integer() and value > 0:
        return int(value)
    if value is not None:
        logger.debug("Ignoring invalid variation count %r; using %d", value, default)
    return default


def recolor_instruction(color: str, preserve_texture: bool = True) -> str:
    """Build the recolor edit instruction for one colour."""
    if preserve_texture:
        return (
            f"Change the color of the primary object(s) in the image to {color}. "
            "Preserve texture and lighting and avoid changing glass or chrome. "
            "Keep a natural look."
        )
    return (
        f"Change the color of the primary object(s) in the image to {color}. "
        "Lighting may change with the new finish; avoid changing glass or chrome. "
        "Keep a natural look."
    )


def visualize_instruction(color: str, areas: Sequence[str] | None = None) -> str:
    """Build the visualize edit instruction for one colour and target areas."""
    target = ", ".join(areas) if areas else DEFAULT_AREAS
    return (
        f"Apply the color {color} to {target} in the image. "
        "Preserve texture and shadows. Keep other elements unchanged."
    )


def estimate_paint(square_feet: float | None) -> dict:
    """Rough paint quantity for a wall area.

    One gallon per 300 square feet, rounded half-up, never less than one.
    A missing or zero area is treated as 1000 square feet.
    """
    area = square_feet or DEFAULT_SQUARE_FEET
    gallons = max(1, math.floor(area / SQUARE_FEET_PER_GALLON + 0.5))
    return {"gallons": gallons, "units": "gallons"}


# ---------------------------------------------------------------------------
# Driver.
# ---------------------------------------------------------------------------


def produce_variations(
    source: ImagePayload,
    attributes: Sequence[str] | None,
    count: Any,
    instruction: Callable[[str], str],
    *,
    client: Transformer,
    api_key: str,
    default_attributes: Sequence[str] = RECOLOR_DEFAULT_COLORS,
    max_default_count: int | None = None,
    size: str | None = None,
) -> list[Variation]:
    """Produce one edited image per selected attribute.

    Args:
        source: Already-resolved source image, reused for every call.
        attributes: Caller's colours; empty or ``None`` selects
            *default_attributes*.
        count: Requested number of variations (lenient, see module docs).
        instruction: Builds the edit instruction for one attribute value.
        client: Object providing ``transform``.
        api_key: Provider credential.
        default_attributes: Fallback attribute list.
        max_default_count: Cap applied to the default count only.
        size: Output size hint forwarded to every edit.

    Returns:
        Variations in iteration order; ``attributes[i % len(attributes)]``
        was applied to entry ``i``.

    Raises:
        Exception: Whatever the first failing ``transform`` raised.  Earlier
            results are discarded.
    """
    values = resolve_attributes(attributes, default_attributes)
    default_count = len(values)
    if max_default_count is not None:
        default_count = min(max_default_count, default_count)
    total = resolve_variation_count(count, default_count)

    variations: list[Variation] = []
    for i in range(total):
        value = values[i % len(values)]
        logger.info("Variation %d/%d: %s", i + 1, total, value)
        request = TransformationRequest(source=source, instruction=instruction(value), size=size)
        result = client.transform(request, api_key=api_key)
        variations.append(Variation(attribute=value, result=result))
    return variations


def recolor_variations(
    source: ImagePayload,
    colors: Sequence[str] | None,
    count: Any,
    *,
    client: Transformer,
    api_key: str,
    preserve_texture: bool = True,
    size: str | None = None,
) -> list[Variation]:
    """Recolor policy: default colours, count defaults to the colour count."""
    return produce_variations(
        source,
        colors,
        count,
        lambda color: recolor_instruction(color, preserve_texture),
        client=client,
        api_key=api_key,
        default_attributes=RECOLOR_DEFAULT_COLORS,
        size=size,
    )


def visualize_variations(
    source: ImagePayload,
    palettes: Sequence[str] | None,
    count: Any,
    *,
    client: Transformer,
    api_key: str,
    areas: Sequence[str] | None = None,
    size: str | None = None,
) -> list[Variation]:
    """Visualize policy: default palettes, count defaults to at most six."""
    return produce_variations(
        source,
        palettes,
        count,
        lambda color: visualize_instruction(color, areas),
        client=client,
        api_key=api_key,
        default_attributes=VISUALIZE_DEFAULT_PALETTES,
        max_default_count=VISUALIZE_MAX_DEFAULT_VARIATIONS,
        size=size,
    )
