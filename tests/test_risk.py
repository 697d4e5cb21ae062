"""Unit tests for risk analysis module."""

import pytest

from honours.classification import calculate_classification
from honours.models import Classification, RiskLevel
from honours.risk import analyze_risk, calculate_drop_threshold, determine_risk_level
from honours.simulator import fill_remaining


def test_determine_risk_level():
    """Test risk tier assignment."""
    # Safe
    assert determine_risk_level(15.0) == RiskLevel.SAFE
    assert determine_risk_level(10.0) == RiskLevel.SAFE

    # Watch
    assert determine_risk_level(9.9) == RiskLevel.WATCH
    assert determine_risk_level(5.0) == RiskLevel.WATCH

    # Danger
    assert determine_risk_level(4.9) == RiskLevel.DANGER
    assert determine_risk_level(0.0) == RiskLevel.DANGER
    assert determine_risk_level(-3.0) == RiskLevel.DANGER


def test_determine_risk_level_custom_thresholds():
    thresholds = {'safe': 8, 'watch': 3}

    assert determine_risk_level(8.0, thresholds) == RiskLevel.SAFE
    assert determine_risk_level(7.9, thresholds) == RiskLevel.WATCH
    assert determine_risk_level(3.0, thresholds) == RiskLevel.WATCH
    assert determine_risk_level(2.9, thresholds) == RiskLevel.DANGER


@pytest.mark.parametrize("average,distance,level", [
    (61.0, 1.0, RiskLevel.DANGER),
    (68.0, 8.0, RiskLevel.WATCH),
    (72.0, 12.0, RiskLevel.SAFE),
])
def test_analyze_risk_upper_second(partial_degree, average, distance, level):
    result = analyze_risk(partial_degree, "Upper Second (2:1)", average)

    assert result.current_boundary == 60
    assert result.distance_above == distance
    assert result.risk_level == level


def test_analyze_risk_exactly_on_boundary(partial_degree):
    result = analyze_risk(partial_degree, Classification.UPPER_SECOND, 60.0)

    assert result.distance_above == 0
    assert result.risk_level == RiskLevel.DANGER
    assert "only 0% above the 2:1 boundary" in result.message


def test_analyze_risk_fail_and_insufficient(partial_degree):
    for classification in ("Fail", "Insufficient Data", "Something Else"):
        result = analyze_risk(partial_degree, classification, 30.0)
        assert result.current_boundary == 0
        assert result.message.startswith("You are currently below the Third class boundary.")


def test_drop_threshold_round_trip(partial_degree):
    """Test scoring the drop threshold everywhere lands on the current boundary."""
    current = calculate_classification(partial_degree)
    assert current.classification == Classification.LOWER_SECOND

    result = analyze_risk(partial_degree, current.classification, current.weighted_average)
    assert result.drop_threshold == 42.9
    assert result.distance_above == 9.7
    assert result.risk_level == RiskLevel.WATCH
    assert "as low as 42.9%" in result.message

    dropped = calculate_classification(fill_remaining(partial_degree, result.drop_threshold))
    assert abs(dropped.weighted_average - result.current_boundary) <= 0.1


def test_drop_threshold_never_reachable(make_module):
    """Test a margin so large that even zero keeps the classification."""
    modules = [make_module("CS601", 10, 6, [(0.9, 90.0), (0.1, None)])]
    current = calculate_classification(modules)

    result = analyze_risk(modules, current.classification, current.weighted_average)
    assert result.drop_threshold == 0
    assert result.risk_level == RiskLevel.SAFE
    assert "Even scoring 0% on remaining assessments won't drop you below your First." in result.message


def test_analyze_risk_fully_graded(make_module):
    modules = [make_module("CS602", 15, 6, [(1.0, 82.0)])]

    secure = analyze_risk(modules, Classification.FIRST, 82.0)
    assert secure.drop_threshold is None
    assert secure.message.endswith("your classification is secure.")

    final = analyze_risk(modules, Classification.UPPER_SECOND, 62.0)
    assert final.drop_threshold is None
    assert final.message.endswith("this is your final result.")


def test_calculate_drop_threshold_clamped(make_module):
    modules = [make_module("CS603", 10, 6, [(0.9, 20.0), (0.1, None)])]

    assert calculate_drop_threshold(modules, 70.0) == 100.0
    assert calculate_drop_threshold([], 70.0) is None
