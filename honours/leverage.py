"""
Grade leverage: rank ungraded assessments by their impact on the final average.

leverage = weight * credits * level_multiplier / total_weighted_credits

i.e. the number of points the final weighted average moves per 1% change in
that one assessment's score.
"""

from typing import List, Optional, Sequence, Tuple

from honours.classification import (
    CLASSIFICATION_BOUNDARIES,
    level_multiplier,
    round_half_up,
    short_label,
    weighted_totals,
)
from honours.models import LeverageResult, Module


def total_weighted_credits(modules: Sequence[Module]) -> float:
    """Sum of credits * level multiplier across all modules, graded or not."""
    return sum(module.credits * level_multiplier(module) for module in modules)


def provisional_average(modules: Sequence[Module]) -> float:
    """Average over every assessment with ungraded work counted as zero."""
    totals = weighted_totals(modules)
    if totals.total_weight == 0:
        return 0.0
    return totals.completed_score / totals.total_weight


def detect_boundary_crossing(current_average: float, leverage: float) -> Tuple[bool, Optional[str]]:
    """
    Check whether a +/-1% change, scaled by leverage, crosses a boundary.

    Boundaries are checked from First downwards; the first crossing wins.
    """
    avg_up = current_average + leverage
    avg_down = current_average - leverage

    for classification, boundary in CLASSIFICATION_BOUNDARIES.items():
        label = short_label(classification)
        if current_average < boundary <= avg_up:
            return True, f"A 1% increase could push you above the {label} boundary ({boundary:g}%)"
        if avg_down < boundary <= current_average:
            return True, f"A 1% decrease could drop you below the {label} boundary ({boundary:g}%)"

    return False, None


def describe_leverage(leverage: float) -> str:
    leverage_pct = round_half_up(leverage * 100)
    if leverage_pct >= 1:
        tier = "High impact"
    elif leverage_pct >= 0.3:
        tier = "Moderate impact"
    else:
        tier = "Lower impact"
    return f"{tier}: each 1% here shifts your final average by ~{leverage:.3f} points"


def calculate_leverage(modules: Sequence[Module]) -> List[LeverageResult]:
    """
    Calculate leverage for every ungraded assessment.

    Returns:
        LeverageResult list sorted by leverage, highest impact first
    """
    weighted_credits = total_weighted_credits(modules)
    if weighted_credits == 0:
        return []

    current_average = provisional_average(modules)
    results: List[LeverageResult] = []

    for module in modules:
        multiplier = level_multiplier(module)
        for assessment in module.assessments:
            if assessment.is_graded:
                continue

            leverage = assessment.weight * module.credits * multiplier / weighted_credits
            crosses, detail = detect_boundary_crossing(current_average, leverage)

            results.append(LeverageResult(
                assessment_id=assessment.id,
                assessment_name=assessment.name,
                module_name=module.name,
                module_code=module.code,
                leverage=leverage,
                description=describe_leverage(leverage),
                crosses_boundary=crosses,
                boundary_detail=detail,
            ))

    results.sort(key=lambda r: r.leverage, reverse=True)
    return results
