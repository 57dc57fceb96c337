"""Tests for colorforge.core.variations — the variation driver.

A stub transformer stands in for the provider client so that calls can be
counted, inspected, and made to fail on demand.  Tests cover:

- Cyclic attribute selection.
- Single source payload reused for every call.
- Fail-fast behaviour (no partial output).
- Recolor and visualize default palettes and default counts.
- Lenient count handling.
- Instruction wording and paint estimates.
"""

from __future__ import annotations

import pytest

from colorforge.core.errors import UpstreamServiceError
from colorforge.core.image_source import ImagePayload
from colorforge.core.provider_client import TransformationRequest, TransformationResult
from colorforge.core.variations import (
    RECOLOR_DEFAULT_COLORS,
    VISUALIZE_DEFAULT_PALETTES,
    estimate_paint,
    produce_variations,
    recolor_instruction,
    recolor_variations,
    resolve_variation_count,
    visualize_instruction,
    visualize_variations,
)


class StubTransformer:
    """Records transform calls; optionally fails on one call index."""

    def __init__(self, fail_on: int | None = None) -> None:
        self.calls: list[tuple[TransformationRequest, str]] = []
        self.fail_on = fail_on

    def transform(self, request: TransformationRequest, *, api_key: str) -> TransformationResult:
        index = len(self.calls)
        self.calls.append((request, api_key))
        if index == self.fail_on:
            raise UpstreamServiceError("edit", 500, "boom")
        return TransformationResult(image=f"data:image/png;base64,out{index}", meta={"i": index})

    @property
    def instructions(self) -> list[str]:
        return [request.instruction for request, _ in self.calls]


@pytest.fixture
def source() -> ImagePayload:
    return ImagePayload(data=b"source-bytes")


class TestProduceVariations:
    """Test the generic driver."""

    def test_cyclic_selection(self, source):
        stub = StubTransformer()
        result = produce_variations(
            source, ["A", "B", "C"], 5, lambda v: f"paint {v}", client=stub, api_key="k"
        )
        assert [v.attribute for v in result] == ["A", "B", "C", "A", "B"]
        assert stub.instructions == ["paint A", "paint B", "paint C", "paint A", "paint B"]

    def test_results_bound_in_order(self, source):
        stub = StubTransformer()
        result = produce_variations(source, ["A", "B"], 2, str, client=stub, api_key="k")
        assert [v.result.meta["i"] for v in result] == [0, 1]

    def test_same_source_for_every_call(self, source):
        stub = StubTransformer()
        produce_variations(source, ["A", "B", "C"], 3, str, client=stub, api_key="k")
        assert all(request.source is source for request, _ in stub.calls)

    def test_credential_and_size_forwarded(self, source):
        stub = StubTransformer()
        produce_variations(source, ["A"], 1, str, client=stub, api_key="sk-x", size="256x256")
        request, key = stub.calls[0]
        assert key == "sk-x"
        assert request.size == "256x256"
        assert request.mask is None

    def test_default_count_is_attribute_count(self, source):
        stub = StubTransformer()
        result = produce_variations(source, ["A", "B", "C"], None, str, client=stub, api_key="k")
        assert len(result) == 3

    def test_max_default_count_only_caps_default(self, source):
        stub = StubTransformer()
        values = ["A", "B", "C", "D"]
        capped = produce_variations(
            source, values, None, str, client=stub, api_key="k", max_default_count=2
        )
        explicit = produce_variations(
            source, values, 4, str, client=stub, api_key="k", max_default_count=2
        )
        assert len(capped) == 2
        assert len(explicit) == 4

    def test_fail_fast(self, source):
        """The first failure aborts the run; later calls never happen."""
        stub = StubTransformer(fail_on=1)
        with pytest.raises(UpstreamServiceError):
            produce_variations(source, ["A", "B", "C"], 3, str, client=stub, api_key="k")
        assert len(stub.calls) == 2

    def test_fail_on_first_call(self, source):
        stub = StubTransformer(fail_on=0)
        with pytest.raises(UpstreamServiceError):
            produce_variations(source, ["A", "B"], 4, str, client=stub, api_key="k")
        assert len(stub.calls) == 1


class TestRecolorPolicy:
    """Test recolor defaults."""

    def test_empty_colors_use_defaults(self, source):
        stub = StubTransformer()
        result = recolor_variations(source, [], None, client=stub, api_key="k")
        assert [v.attribute for v in result] == list(RECOLOR_DEFAULT_COLORS)

    def test_missing_colors_use_defaults(self, source):
        stub = StubTransformer()
        result = recolor_variations(source, None, None, client=stub, api_key="k")
        assert len(result) == len(RECOLOR_DEFAULT_COLORS)

    def test_explicit_count(self, source):
        stub = StubTransformer()
        result = recolor_variations(source, ["#000000"], 3, client=stub, api_key="k")
        assert [v.attribute for v in result] == ["#000000"] * 3

    def test_preserve_texture_wording(self, source):
        stub = StubTransformer()
        recolor_variations(source, ["#123456"], 1, client=stub, api_key="k")
        recolor_variations(
            source, ["#123456"], 1, client=stub, api_key="k", preserve_texture=False
        )
        assert "Preserve texture and lighting" in stub.instructions[0]
        assert "Preserve texture" not in stub.instructions[1]
        assert all("#123456" in text for text in stub.instructions)


class TestVisualizePolicy:
    """Test visualize defaults."""

    def test_empty_palettes_use_defaults(self, source):
        stub = StubTransformer()
        result = visualize_variations(source, [], None, client=stub, api_key="k")
        expected = list(VISUALIZE_DEFAULT_PALETTES)[: min(6, len(VISUALIZE_DEFAULT_PALETTES))]
        assert [v.attribute for v in result] == expected

    def test_default_count_capped_at_six(self, source):
        stub = StubTransformer()
        palettes = [f"#00000{i}" for i in range(8)]
        result = visualize_variations(source, palettes, None, client=stub, api_key="k")
        assert len(result) == 6

    def test_explicit_count_above_six(self, source):
        stub = StubTransformer()
        result = visualize_variations(source, ["#111111", "#222222"], 7, client=stub, api_key="k")
        assert len(result) == 7

    def test_areas_in_instruction(self, source):
        stub = StubTransformer()
        visualize_variations(
            source, ["#abcdef"], 1, client=stub, api_key="k", areas=["walls", "trim"]
        )
        assert stub.instructions == [
            "Apply the color #abcdef to walls, trim in the image. "
            "Preserve texture and shadows. Keep other elements unchanged."
        ]


class TestResolveVariationCount:
    """The count policy falls back instead of failing."""

    @pytest.mark.parametrize("value", [None, 0, -2, 2.5, "3", True, False, [], {}])
    def test_invalid_values_fall_back(self, value):
        assert resolve_variation_count(value, 4) == 4

    @pytest.mark.parametrize("value, expected", [(1, 1), (3, 3), (3.0, 3), (12, 12)])
    def test_positive_integers_are_used(self, value, expected):
        assert resolve_variation_count(value, 4) == expected


class TestInstructions:
    """Test instruction builders."""

    def test_recolor_instruction(self):
        assert recolor_instruction("#ff0000") == (
            "Change the color of the primary object(s) in the image to #ff0000. "
            "Preserve texture and lighting and avoid changing glass or chrome. "
            "Keep a natural look."
        )

    def test_visualize_default_areas(self):
        assert "to main surfaces in the image" in visualize_instruction("#ff0000")

    def test_visualize_empty_areas_use_default(self):
        assert "to main surfaces in the image" in visualize_instruction("#ff0000", [])


class TestEstimatePaint:
    """Test paint estimates."""

    @pytest.mark.parametrize(
        "square_feet, gallons",
        [(None, 3), (0, 3), (100, 1), (150, 1), (450, 2), (1200, 4), (3000, 10)],
    )
    def test_gallons(self, square_feet, gallons):
        assert estimate_paint(square_feet) == {"gallons": gallons, "units": "gallons"}
