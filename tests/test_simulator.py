"""Unit tests for what-if simulator module."""

import pytest

from honours.classification import calculate_classification
from honours.models import Classification, WhatIfOverride
from honours.simulator import UnknownAssessmentError, apply_what_if, fill_remaining, project_scenario


def test_apply_what_if_does_not_mutate(partial_degree):
    scenario = apply_what_if(partial_degree, [WhatIfOverride(assessment_id="ABC601-2", score=75.0)])

    assert partial_degree[1].assessments[1].grade is None
    assert scenario[1].assessments[1].score == 75.0
    # untouched modules are shared, not copied
    assert scenario[0] is partial_degree[0]


def test_apply_what_if_clears_grade(partial_degree):
    scenario = apply_what_if(partial_degree, [WhatIfOverride(assessment_id="ABC501-1", score=None)])

    assert scenario[0].assessments[0].grade is None
    assert partial_degree[0].assessments[0].score == 55.0


def test_apply_what_if_unknown_assessment(partial_degree):
    with pytest.raises(UnknownAssessmentError):
        apply_what_if(partial_degree, [WhatIfOverride(assessment_id="NOPE-1", score=50.0)])


def test_fill_remaining(partial_degree):
    filled = fill_remaining(partial_degree, 70.0)

    assert all(a.is_graded for m in filled for a in m.assessments)
    assert filled[0].assessments[0].score == 55.0
    assert filled[1].assessments[1].score == 70.0


def test_project_scenario_changes_band(partial_degree):
    overrides = [
        WhatIfOverride(assessment_id="ABC501-2", score=65.0),
        WhatIfOverride(assessment_id="ABC601-2", score=65.0),
    ]
    projection = project_scenario(partial_degree, overrides)

    assert projection.current_classification.classification == Classification.LOWER_SECOND
    # L5 60, L6 63.8
    assert projection.scenario_classification.weighted_average == 62.5
    assert projection.scenario_classification.classification == Classification.UPPER_SECOND
    assert projection.message == "This scenario moves you from 2:2 to 2:1 with a weighted average of 62.5%."
    # default target is the tier above the current projection; nothing left to solve for
    assert projection.grade_needed is None


def test_project_scenario_same_band(partial_degree):
    projection = project_scenario(
        partial_degree,
        [WhatIfOverride(assessment_id="ABC501-2", score=56.0)],
        target="First",
    )

    assert projection.scenario_classification.classification == Classification.LOWER_SECOND
    assert projection.scenario_classification.weighted_average == 59.8
    assert projection.message == "This scenario keeps you at 2:2, up 0.1 points to 59.8%."
    assert projection.grade_needed.target == Classification.FIRST
    assert projection.grade_needed.grade == 87.4
    assert projection.grade_needed.reachable is True


def test_project_scenario_no_change(partial_degree):
    projection = project_scenario(partial_degree, [])

    assert projection.message == "This scenario keeps you at 2:2 with no change to your weighted average."
    assert projection.grade_needed.target == Classification.UPPER_SECOND
    assert projection.grade_needed.grade == 60.5


def test_project_scenario_bad_target(partial_degree):
    with pytest.raises(ValueError):
        project_scenario(partial_degree, [], target="Distinction")


def test_scenario_consistent_with_classification(partial_degree):
    """Test a what-if overlay is just a classification of the transformed copy."""
    overrides = [WhatIfOverride(assessment_id="ABC601-2", score=88.0)]
    projection = project_scenario(partial_degree, overrides)

    direct = calculate_classification(apply_what_if(partial_degree, overrides))
    assert projection.scenario_classification == direct
