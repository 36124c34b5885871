# src/tracking/cost_calculator.py - v1
"""Cost calculation for a single completion call.

Prices are USD per 1M tokens. Unknown models cost nothing.
"""

from __future__ import annotations

from contentflow.tracking.models import ModelPricing

DEFAULT_PRICING: dict[str, ModelPricing] = {
    "claude-sonnet-4-20250514": ModelPricing(
        model="claude-sonnet-4-20250514",
        input_price_per_1m=3.0, output_price_per_1m=15.0,
    ),
    "claude-3-5-haiku-20241022": ModelPricing(
        model="claude-3-5-haiku-20241022",
        input_price_per_1m=0.80, output_price_per_1m=4.0,
    ),
    "gemini-2.0-flash": ModelPricing(
        model="gemini-2.0-flash",
        input_price_per_1m=0.10, output_price_per_1m=0.40,
    ),
    "gemini-1.5-pro": ModelPricing(
        model="gemini-1.5-pro",
        input_price_per_1m=1.25, output_price_per_1m=5.0,
    ),
    "gpt-4o": ModelPricing(
        model="gpt-4o",
        input_price_per_1m=2.50, output_price_per_1m=10.0,
    ),
    "gpt-4o-mini": ModelPricing(
        model="gpt-4o-mini",
        input_price_per_1m=0.15, output_price_per_1m=0.60,
    ),
}


def compute_call_cost(
    model: str,
    tokens_in: int,
    tokens_out: int,
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Compute estimated cost for a single LLM call in USD."""
    pricing = pricing or DEFAULT_PRICING
    p = pricing.get(model)
    if p is None:
        return 0.0

    cost = (tokens_in * p.input_price_per_1m / 1_000_000
            + tokens_out * p.output_price_per_1m / 1_000_000)
    return round(cost, 6)
