"""
UK honours degree classification.

Standard UK regulations:
- Level 5 (second year) modules contribute 1/3 of the final mark
- Level 6 (final year) modules contribute 2/3 of the final mark
- Credit-weighted within each level
- Boundaries: First >= 70, 2:1 >= 60, 2:2 >= 50, Third >= 40
"""

import math
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from honours.models import (
    Classification,
    ClassificationResult,
    GradeNeeded,
    Module,
    ModuleAverage,
)


LEVEL_MULTIPLIERS: Dict[int, float] = {5: 1 / 3, 6: 2 / 3}

CLASSIFICATION_BOUNDARIES: Dict[Classification, float] = {
    Classification.FIRST: 70.0,
    Classification.UPPER_SECOND: 60.0,
    Classification.LOWER_SECOND: 50.0,
    Classification.THIRD: 40.0,
}

SHORT_LABELS: Dict[Classification, str] = {
    Classification.FIRST: "First",
    Classification.UPPER_SECOND: "2:1",
    Classification.LOWER_SECOND: "2:2",
    Classification.THIRD: "Third",
    Classification.FAIL: "Fail",
}

NEXT_TIER: Dict[Classification, Classification] = {
    Classification.FAIL: Classification.THIRD,
    Classification.THIRD: Classification.LOWER_SECOND,
    Classification.LOWER_SECOND: Classification.UPPER_SECOND,
    Classification.UPPER_SECOND: Classification.FIRST,
}


class WeightTotals(NamedTuple):
    """Degree-wide sums over every assessment's global weight."""
    completed_score: float
    completed_weight: float
    remaining_weight: float

    @property
    def total_weight(self) -> float:
        return self.completed_weight + self.remaining_weight


def round_half_up(value: float, places: int = 1) -> float:
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-places)
    exact = Decimal(str(value))
    with localcontext() as ctx:
        # quantize needs every integer digit plus the requested places
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    return max(lower, min(upper, value))


def to_classification(value: Union[Classification, str, None]) -> Optional[Classification]:
    """Coerce a label into a Classification, None if it is not one."""
    if value is None or isinstance(value, Classification):
        return value
    try:
        return Classification(value)
    except ValueError:
        return None


def boundary_for(classification: Union[Classification, str, None]) -> Optional[float]:
    """Lower boundary of a passing band; None for Fail, Insufficient Data or unknown labels."""
    resolved = to_classification(classification)
    if resolved is None:
        return None
    return CLASSIFICATION_BOUNDARIES.get(resolved)


def next_tier(classification: Union[Classification, str]) -> Optional[Classification]:
    """The band directly above; None at First or without data."""
    resolved = to_classification(classification)
    if resolved is None:
        return None
    return NEXT_TIER.get(resolved)


def short_label(classification: Union[Classification, str]) -> str:
    resolved = to_classification(classification)
    if resolved is None:
        return "N/A"
    return SHORT_LABELS.get(resolved, "N/A")


def get_classification(average: float) -> Classification:
    """
    Classify a weighted average into a UK degree classification.

    Args:
        average: Weighted average (0-100)

    Returns:
        Classification band (lower bounds inclusive)
    """
    if average >= 70:
        return Classification.FIRST
    elif average >= 60:
        return Classification.UPPER_SECOND
    elif average >= 50:
        return Classification.LOWER_SECOND
    elif average >= 40:
        return Classification.THIRD
    else:
        return Classification.FAIL


def level_multiplier(module: Module) -> float:
    return LEVEL_MULTIPLIERS[module.level]


def module_average(module: Module) -> Optional[ModuleAverage]:
    """
    Weighted average of a single module over its graded assessments.

    The average is renormalised over the graded weight only, so a module with
    one marked piece of coursework reports that piece's score.

    Returns:
        ModuleAverage, or None when nothing (with non-zero weight) is graded
    """
    graded = [a for a in module.assessments if a.is_graded]
    if not graded:
        return None

    graded_weight = sum(a.weight for a in graded)
    if graded_weight == 0:
        return None

    weighted_sum = sum(a.score * a.weight for a in graded)
    module_weight = sum(a.weight for a in module.assessments)

    return ModuleAverage(
        average=weighted_sum / graded_weight,
        completion_ratio=graded_weight / module_weight,
    )


class _LevelSummary(NamedTuple):
    average: Optional[float]
    total_credits: int
    completed_credits: float


def _level_summary(modules: Sequence[Module]) -> _LevelSummary:
    weighted_score = 0.0
    graded_credits = 0
    total_credits = 0
    completed_credits = 0.0

    for module in modules:
        total_credits += module.credits
        result = module_average(module)
        if result is None:
            continue
        weighted_score += result.average * module.credits
        graded_credits += module.credits
        completed_credits += module.credits * result.completion_ratio

    average = weighted_score / graded_credits if graded_credits > 0 else None
    return _LevelSummary(average, total_credits, completed_credits)


def calculate_classification(modules: Sequence[Module]) -> ClassificationResult:
    """
    Calculate the projected degree classification from a set of modules.

    Each level is credit-weighted over its modules with at least one grade.
    With both levels present the result is l5/3 + 2*l6/3; with only one, that
    level's average is used as-is.
    """
    l5 = _level_summary([m for m in modules if m.level == 5])
    l6 = _level_summary([m for m in modules if m.level == 6])

    total_credits = l5.total_credits + l6.total_credits
    completed_credits = l5.completed_credits + l6.completed_credits

    if l5.average is not None and l6.average is not None:
        weighted_average = l5.average / 3 + l6.average * 2 / 3
    elif l6.average is not None:
        weighted_average = l6.average
    elif l5.average is not None:
        weighted_average = l5.average
    else:
        return ClassificationResult(
            classification=Classification.INSUFFICIENT_DATA,
            weighted_average=0.0,
            level5_average=None,
            level6_average=None,
            credits_completed=0,
            total_credits=total_credits,
            confidence=0.0,
        )

    confidence = completed_credits / total_credits if total_credits > 0 else 0.0

    return ClassificationResult(
        classification=get_classification(weighted_average),
        weighted_average=round_half_up(weighted_average),
        level5_average=round_half_up(l5.average) if l5.average is not None else None,
        level6_average=round_half_up(l6.average) if l6.average is not None else None,
        credits_completed=int(round_half_up(completed_credits, 0)),
        total_credits=total_credits,
        confidence=round_half_up(confidence, 2),
    )


def weighted_totals(modules: Sequence[Module]) -> WeightTotals:
    """
    Sum global assessment weights across the whole degree.

    An assessment's global weight is weight * credits * level multiplier, so
    the overall average is sum(score * global weight) / sum(global weight).
    """
    completed_score = 0.0
    completed_weight = 0.0
    remaining_weight = 0.0

    for module in modules:
        credit_weight = module.credits * level_multiplier(module)
        for assessment in module.assessments:
            global_weight = assessment.weight * credit_weight
            if assessment.is_graded:
                completed_score += assessment.score * global_weight
                completed_weight += global_weight
            else:
                remaining_weight += global_weight

    return WeightTotals(completed_score, completed_weight, remaining_weight)


def solve_for_remaining(totals: WeightTotals, boundary: float) -> Optional[float]:
    """
    Uniform score on all ungraded work that lands the overall average on `boundary`.

    Solves (completed_score + x * remaining) / total = boundary for x.
    Unclamped; None when nothing remains.
    """
    if totals.remaining_weight == 0:
        return None
    needed_from_remaining = boundary * totals.total_weight - totals.completed_score
    return needed_from_remaining / totals.remaining_weight


def solve_grade_needed(
    modules: Sequence[Module],
    target: Union[Classification, str],
) -> Optional[GradeNeeded]:
    """
    Grade needed on remaining assessments to reach `target`, clamped and raw.

    Returns None for an unsupported target or when every assessment is graded.
    """
    classification = to_classification(target)
    boundary = boundary_for(classification)
    if boundary is None:
        return None

    raw = solve_for_remaining(weighted_totals(modules), boundary)
    if raw is None:
        return None

    return GradeNeeded(
        target=classification,
        boundary=boundary,
        grade=round_half_up(clamp(raw)),
        raw=round_half_up(raw),
        reachable=raw <= 100,
    )


def calculate_grade_needed(
    modules: Sequence[Module],
    target: Union[Classification, str],
) -> Optional[float]:
    """Grade needed on remaining assessments, clamped to 0-100 and rounded to 1 dp."""
    needed = solve_grade_needed(modules, target)
    return needed.grade if needed is not None else None


def completion_percentage(modules: Sequence[Module]) -> int:
    """Graded assessments as a whole-number percentage of all assessments."""
    total = 0
    graded = 0
    for module in modules:
        for assessment in module.assessments:
            total += 1
            if assessment.is_graded:
                graded += 1
    if total == 0:
        return 0
    return int(round_half_up(graded / total * 100, 0))


def graded_module_averages(modules: Sequence[Module]) -> List[Tuple[Module, float]]:
    """(module, average) pairs for every module that has graded work."""
    pairs = []
    for module in modules:
        result = module_average(module)
        if result is not None:
            pairs.append((module, result.average))
    return pairs
