"""
Cost accounting tests.

Run with:
    python -m pytest tests/test_pricing.py -v
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.video_generation.models import ModelPricing, ResolutionPricing
from services.video_generation.pricing import calculate_cost_from_pricing, format_cost
from services.video_generation.providers.openai_video import OPENAI_VIDEO_MODELS


class TestCalculateCost:
    """Per-second, per-generation and resolution-tier pricing."""

    def test_no_pricing_is_free(self):
        assert calculate_cost_from_pricing(None, 8) == 0.0

    def test_per_second(self):
        pricing = ModelPricing(cost_per_second=0.10)
        assert calculate_cost_from_pricing(pricing, 8) == pytest.approx(0.80)

    def test_per_second_without_duration(self):
        pricing = ModelPricing(cost_per_second=0.10)
        assert calculate_cost_from_pricing(pricing, None) == 0.0

    def test_per_generation_ignores_duration(self):
        pricing = ModelPricing(cost_per_generation=0.04)
        assert calculate_cost_from_pricing(pricing, 5) == pytest.approx(0.04)
        assert calculate_cost_from_pricing(pricing, 50) == pytest.approx(0.04)

    def test_per_second_wins_over_per_generation(self):
        pricing = ModelPricing(cost_per_second=0.2, cost_per_generation=1.0)
        assert calculate_cost_from_pricing(pricing, 4) == pytest.approx(0.8)

    def test_resolution_tier_overrides_top_level(self):
        pricing = ModelPricing(
            cost_per_second=0.30,
            pricing_by_resolution={"1080p": ResolutionPricing(cost_per_second=0.50)},
        )
        assert calculate_cost_from_pricing(pricing, 4, "1080p") == pytest.approx(2.0)
        assert calculate_cost_from_pricing(pricing, 4, "720p") == pytest.approx(1.2)

    def test_tier_only_overrides_fields_it_sets(self):
        pricing = ModelPricing(
            cost_per_generation=0.05,
            pricing_by_resolution={"720p": ResolutionPricing(cost_per_second=None)},
        )
        assert calculate_cost_from_pricing(pricing, 5, "720p") == pytest.approx(0.05)

    def test_zero_rates_are_free(self):
        pricing = ModelPricing(cost_per_second=0, cost_per_generation=0)
        assert calculate_cost_from_pricing(pricing, 10) == 0.0

    def test_sora_2_pro_1080p(self):
        pro = next(m for m in OPENAI_VIDEO_MODELS if m.id == "sora-2-pro")
        assert calculate_cost_from_pricing(pro.pricing, 12, "1080p") == pytest.approx(6.0)


class TestFormatCost:

    def test_zero(self):
        assert format_cost(0) == "$0.00"

    def test_cents(self):
        assert format_cost(0.8) == "$0.80"

    def test_sub_cent(self):
        assert format_cost(0.0012) == "$0.0012"

    def test_tiny(self):
        assert format_cost(0.00001) == "<$0.0001"
