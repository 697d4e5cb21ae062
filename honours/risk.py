"""Boundary risk: safety margin above the current classification boundary."""

from typing import Dict, Optional, Sequence, Union

from honours.classification import (
    boundary_for,
    clamp,
    round_half_up,
    short_label,
    solve_for_remaining,
    to_classification,
    weighted_totals,
)
from honours.models import Classification, Module, RiskAnalysisResult, RiskLevel


DEFAULT_RISK_MARGINS: Dict[str, float] = {'safe': 10.0, 'watch': 5.0}


def determine_risk_level(distance_above: float, thresholds: Optional[Dict[str, float]] = None) -> RiskLevel:
    """
    Categorize the margin above a boundary into safe/watch/danger.

    Args:
        distance_above: Percentage points above the current boundary
        thresholds: Dict with 'safe' and 'watch' minimum margins

    Returns:
        RiskLevel
    """
    thresholds = thresholds or DEFAULT_RISK_MARGINS
    if distance_above >= thresholds.get('safe', 10.0):
        return RiskLevel.SAFE
    elif distance_above >= thresholds.get('watch', 5.0):
        return RiskLevel.WATCH
    else:
        return RiskLevel.DANGER


def calculate_drop_threshold(modules: Sequence[Module], current_boundary: float) -> Optional[float]:
    """
    Lowest average on remaining assessments that still keeps the current boundary.

    Clamped to 0-100. Returns None if there are no remaining assessments.
    """
    drop_grade = solve_for_remaining(weighted_totals(modules), current_boundary)
    if drop_grade is None:
        return None
    return round_half_up(clamp(drop_grade))


def _build_message(
    classification: Optional[Classification],
    label: str,
    distance_above: float,
    risk_level: RiskLevel,
    drop_threshold: Optional[float],
) -> str:
    if classification in (None, Classification.FAIL, Classification.INSUFFICIENT_DATA):
        return ("You are currently below the Third class boundary. Focus on maximising your "
                "remaining assessment scores to improve your classification.")

    margin = f"{distance_above:g}%"

    if drop_threshold is None:
        if risk_level == RiskLevel.SAFE:
            return (f"You're {margin} above the {label} boundary. "
                    f"All assessments are graded - your classification is secure.")
        return (f"You're {margin} above the {label} boundary. "
                f"All assessments are graded - this is your final result.")

    if drop_threshold <= 0:
        drop_message = f"Even scoring 0% on remaining assessments won't drop you below your {label}."
    else:
        drop_message = (f"You can score as low as {drop_threshold:g}% on remaining assessments "
                        f"and still keep your {label}.")

    if risk_level == RiskLevel.SAFE:
        return f"You're {margin} above the {label} boundary. You have a comfortable margin. {drop_message}"
    if risk_level == RiskLevel.WATCH:
        return (f"You're {margin} above the {label} boundary. "
                f"This is a reasonable margin but don't let up. {drop_message}")
    return (f"You're only {margin} above the {label} boundary. "
            f"This is tight - every assessment counts. {drop_message}")


def analyze_risk(
    modules: Sequence[Module],
    current_classification: Union[Classification, str],
    weighted_average: float,
    thresholds: Optional[Dict[str, float]] = None,
) -> RiskAnalysisResult:
    """
    Analyze the risk of dropping to a lower classification.

    Args:
        modules: All modules with their assessments and grades
        current_classification: Current band, e.g. "Upper Second (2:1)"
        weighted_average: Current overall weighted average
        thresholds: Optional override of the safe/watch margins

    Returns:
        RiskAnalysisResult
    """
    classification = to_classification(current_classification)
    current_boundary = boundary_for(classification)
    if current_boundary is None:
        current_boundary = 0.0

    distance_above = round_half_up(weighted_average - current_boundary)
    risk_level = determine_risk_level(distance_above, thresholds)
    drop_threshold = calculate_drop_threshold(modules, current_boundary)

    label = short_label(classification) if classification is not None else str(current_classification)
    message = _build_message(classification, label, distance_above, risk_level, drop_threshold)

    return RiskAnalysisResult(
        current_boundary=current_boundary,
        distance_above=distance_above,
        risk_level=risk_level,
        drop_threshold=drop_threshold,
        message=message,
    )
