"""Rule-based insight generation from module averages and the classification result."""

from typing import List, Sequence

from honours.classification import (
    CLASSIFICATION_BOUNDARIES,
    completion_percentage,
    graded_module_averages,
    next_tier,
    round_half_up,
    short_label,
    solve_grade_needed,
)
from honours.models import (
    AllGradedInsight,
    Classification,
    ClassificationResult,
    CompletionInsight,
    Insight,
    JustBelowBoundaryInsight,
    Module,
    NearBoundaryInsight,
    OnTrackForFirstInsight,
    OutlierModuleInsight,
    PathToTierInsight,
    StrongestModuleInsight,
    TierOutOfReachInsight,
    WeakestModuleInsight,
)


NEAR_BOUNDARY_MARGIN = 3.0
OUTLIER_DEVIATION = 15.0


def _pct(value: float) -> str:
    return f"{round_half_up(value):g}"


def _strongest_module(module_averages) -> List[Insight]:
    if not module_averages:
        return []
    module, avg = max(module_averages, key=lambda pair: pair[1])
    return [StrongestModuleInsight(
        title="Strongest Module",
        description=(f"{module.name} ({module.code}) is your top performer at {_pct(avg)}%. "
                     f"Keep up this standard across your other modules."),
        module_code=module.code,
        module_name=module.name,
        average=round_half_up(avg),
    )]


def _weakest_module(module_averages) -> List[Insight]:
    if len(module_averages) < 2:
        return []
    module, avg = min(module_averages, key=lambda pair: pair[1])
    return [WeakestModuleInsight(
        title="Module Needing Attention",
        description=(f"{module.name} ({module.code}) is your lowest at {_pct(avg)}%. "
                     f"Focusing here could improve your overall classification."),
        module_code=module.code,
        module_name=module.name,
        average=round_half_up(avg),
    )]


def _next_tier(modules: Sequence[Module], result: ClassificationResult) -> List[Insight]:
    tier = next_tier(result.classification)
    if tier is None:
        return []
    needed = solve_grade_needed(modules, tier)
    if needed is None:
        return []

    name = short_label(tier)
    if needed.reachable:
        return [PathToTierInsight(
            title=f"Path to a {name}",
            description=(f"You need an average of {needed.grade:g}% on your remaining assessments "
                         f"to reach a {name} classification."),
            tier=tier,
            boundary=needed.boundary,
            grade_needed=needed.grade,
        )]
    return [TierOutOfReachInsight(
        title=f"{name} Out of Reach",
        description=(f"Reaching a {name} would require over 100% on remaining assessments. "
                     f"Focus on securing your current {short_label(result.classification)}."),
        tier=tier,
        boundary=needed.boundary,
        grade_needed=needed.raw,
    )]


def _boundary_proximity(module_averages) -> List[Insight]:
    insights: List[Insight] = []
    for module, avg in module_averages:
        for classification, boundary in CLASSIFICATION_BOUNDARIES.items():
            name = short_label(classification)
            distance = avg - boundary
            if 0 <= distance < NEAR_BOUNDARY_MARGIN:
                insights.append(NearBoundaryInsight(
                    title=f"{module.code} Near {name} Boundary",
                    description=(f"{module.name} is only {_pct(distance)}% above the {name} boundary "
                                 f"({boundary:g}%). A small dip in remaining assessments could affect "
                                 f"this module's classification band."),
                    module_code=module.code,
                    module_name=module.name,
                    boundary=boundary,
                    distance=round_half_up(distance),
                ))
                break
            if -NEAR_BOUNDARY_MARGIN < distance < 0:
                insights.append(JustBelowBoundaryInsight(
                    title=f"{module.code} Just Below {name}",
                    description=(f"{module.name} is {_pct(abs(distance))}% below the {name} boundary "
                                 f"({boundary:g}%). A strong result on the next assessment could push it over."),
                    module_code=module.code,
                    module_name=module.name,
                    boundary=boundary,
                    distance=round_half_up(distance),
                ))
                break
    return insights


def _completion(modules: Sequence[Module]) -> List[Insight]:
    completion = completion_percentage(modules)
    if completion >= 100:
        return [AllGradedInsight(
            title="All Assessments Graded",
            description="All your assessments have been graded. Your classification is final based on these results.",
        )]

    if completion < 25:
        message = (f"You've completed {completion}% of your assessments. "
                   f"Your classification will become more accurate as more grades come in.")
    elif completion < 75:
        message = (f"You're {completion}% through your assessments. "
                   f"Your current projection is based on a solid foundation but can still shift.")
    else:
        message = (f"You've completed {completion}% of your assessments. "
                   f"Your projected classification is fairly reliable at this stage.")
    return [CompletionInsight(title=f"{completion}% Complete", description=message, percent=completion)]


def _on_track_for_first(result: ClassificationResult) -> List[Insight]:
    if result.classification != Classification.FIRST:
        return []
    return [OnTrackForFirstInsight(
        title="On Track for a First!",
        description=(f"With a weighted average of {result.weighted_average:g}%, you're projected for a "
                     f"First Class Honours. Outstanding work - keep it up!"),
        weighted_average=result.weighted_average,
    )]


def _outliers(module_averages) -> List[Insight]:
    if len(module_averages) < 3:
        return []
    mean_avg = sum(avg for _, avg in module_averages) / len(module_averages)

    insights: List[Insight] = []
    for module, avg in module_averages:
        deviation = mean_avg - avg
        if deviation >= OUTLIER_DEVIATION:
            insights.append(OutlierModuleInsight(
                title=f"{module.code} Significantly Below Average",
                description=(f"{module.name} is {int(round_half_up(deviation, 0))}% below your average module "
                             f"performance. This is dragging down your overall classification. "
                             f"Consider seeking help or extra revision here."),
                module_code=module.code,
                module_name=module.name,
                average=round_half_up(avg),
                deviation=round_half_up(deviation),
            ))
    return insights


def generate_insights(modules: Sequence[Module], classification_result: ClassificationResult) -> List[Insight]:
    """
    Generate personalised insights, in display order:

    1. Strongest module
    2. Weakest module (needs two graded modules)
    3. Grade needed for the next classification tier
    4. Modules within 3 points of a boundary
    5. Completion percentage
    6. Congratulations when projected a First
    7. Modules 15+ points below the mean module average (needs three)
    """
    module_averages = graded_module_averages(modules)

    insights: List[Insight] = []
    insights.extend(_strongest_module(module_averages))
    insights.extend(_weakest_module(module_averages))
    insights.extend(_next_tier(modules, classification_result))
    insights.extend(_boundary_proximity(module_averages))
    insights.extend(_completion(modules))
    insights.extend(_on_track_for_first(classification_result))
    insights.extend(_outliers(module_averages))
    return insights
