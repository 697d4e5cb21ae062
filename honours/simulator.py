"""What-if scenarios: hypothetical grades applied to a copy of the module list."""

from typing import Dict, List, Optional, Sequence, Union

from honours.classification import (
    calculate_classification,
    next_tier,
    short_label,
    solve_grade_needed,
    to_classification,
)
from honours.models import (
    Classification,
    ClassificationResult,
    Grade,
    Module,
    ProjectionResult,
    WhatIfOverride,
)


class UnknownAssessmentError(KeyError):
    """An override refers to an assessment that is not in the module list."""


def apply_what_if(modules: Sequence[Module], overrides: Sequence[WhatIfOverride]) -> List[Module]:
    """
    Return new modules with the overridden grades; the inputs are left untouched.

    Raises:
        UnknownAssessmentError: if an override names an assessment id not present
    """
    scores: Dict[str, Optional[float]] = {o.assessment_id: o.score for o in overrides}

    known = {a.id for m in modules for a in m.assessments}
    missing = [assessment_id for assessment_id in scores if assessment_id not in known]
    if missing:
        raise UnknownAssessmentError(f"Unknown assessment id(s): {', '.join(missing)}")

    scenario: List[Module] = []
    for module in modules:
        if not any(a.id in scores for a in module.assessments):
            scenario.append(module)
            continue
        assessments = []
        for assessment in module.assessments:
            if assessment.id in scores:
                score = scores[assessment.id]
                grade = Grade(score=score) if score is not None else None
                assessment = assessment.model_copy(update={'grade': grade})
            assessments.append(assessment)
        scenario.append(module.model_copy(update={'assessments': assessments}))
    return scenario


def fill_remaining(modules: Sequence[Module], score: float) -> List[Module]:
    """Grade every ungraded assessment with the same score."""
    overrides = [
        WhatIfOverride(assessment_id=a.id, score=score)
        for m in modules for a in m.assessments if not a.is_graded
    ]
    return apply_what_if(modules, overrides)


def _describe_change(current: ClassificationResult, scenario: ClassificationResult) -> str:
    if scenario.classification == Classification.INSUFFICIENT_DATA:
        return "This scenario leaves no graded work to classify."

    if scenario.classification != current.classification:
        return (f"This scenario moves you from {short_label(current.classification)} to "
                f"{short_label(scenario.classification)} with a weighted average of "
                f"{scenario.weighted_average:g}%.")

    delta = round(scenario.weighted_average - current.weighted_average, 1)
    if delta == 0:
        return (f"This scenario keeps you at {short_label(scenario.classification)} "
                f"with no change to your weighted average.")
    direction = "up" if delta > 0 else "down"
    return (f"This scenario keeps you at {short_label(scenario.classification)}, "
            f"{direction} {abs(delta):g} points to {scenario.weighted_average:g}%.")


def project_scenario(
    modules: Sequence[Module],
    overrides: Sequence[WhatIfOverride],
    target: Union[Classification, str, None] = None,
) -> ProjectionResult:
    """
    Compare the current projection with a what-if scenario.

    The grade needed is solved on the scenario for `target`, defaulting to the
    tier above the current classification.

    Raises:
        ValueError: if `target` is given but is not a classification band
        UnknownAssessmentError: if an override names an unknown assessment
    """
    current = calculate_classification(modules)
    scenario_modules = apply_what_if(modules, overrides)
    scenario = calculate_classification(scenario_modules)

    if target is not None:
        resolved = to_classification(target)
        if resolved is None:
            raise ValueError(f"Unsupported target classification: {target}")
    else:
        resolved = next_tier(current.classification)

    grade_needed = solve_grade_needed(scenario_modules, resolved) if resolved is not None else None

    return ProjectionResult(
        current_classification=current,
        scenario_classification=scenario,
        grade_needed=grade_needed,
        message=_describe_change(current, scenario),
    )
