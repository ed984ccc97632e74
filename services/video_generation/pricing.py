"""
Cost accounting for video generations.

Two pricing shapes are supported:
- cost_per_second: cost = rate x duration (OpenAI Sora)
- cost_per_generation: flat cost regardless of duration (WaveSpeed)

A resolution tier, when present for the requested resolution, overrides the
top-level rates field by field. Per-second pricing wins over per-generation.
"""

from typing import Optional

from .models import ModelPricing


def calculate_cost_from_pricing(
    pricing: Optional[ModelPricing],
    duration_seconds: Optional[float],
    resolution: Optional[str] = None,
) -> float:
    """Estimate the cost of one generation; 0 when no rate applies."""
    if pricing is None:
        return 0.0

    per_second = pricing.cost_per_second
    per_generation = pricing.cost_per_generation

    tier = pricing.pricing_by_resolution.get(resolution) if resolution else None
    if tier is not None:
        if tier.cost_per_second is not None:
            per_second = tier.cost_per_second
        if tier.cost_per_generation is not None:
            per_generation = tier.cost_per_generation

    if per_second is not None and per_second > 0:
        return (duration_seconds or 0) * per_second

    if per_generation is not None and per_generation > 0:
        return per_generation

    return 0.0


def format_cost(cost: float) -> str:
    """Format a cost for display, e.g. "$0.80" or "$0.0012"."""
    if cost == 0:
        return "$0.00"
    if cost < 0.0001:
        return "<$0.0001"
    if cost < 0.01:
        return f"${cost:.4f}"
    return f"${cost:.2f}"
