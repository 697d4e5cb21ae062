"""Data models for the Honours Degree Tracker."""

from enum import Enum
from typing import Annotated, Optional, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenModel(CamelModel):
    """Immutable input value object."""
    model_config = ConfigDict(frozen=True)


class Classification(str, Enum):
    """UK honours degree classification bands."""
    FIRST = "First"
    UPPER_SECOND = "Upper Second (2:1)"
    LOWER_SECOND = "Lower Second (2:2)"
    THIRD = "Third"
    FAIL = "Fail"
    INSUFFICIENT_DATA = "Insufficient Data"


class RiskLevel(str, Enum):
    SAFE = "safe"
    WATCH = "watch"
    DANGER = "danger"


class InsightType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    ACTION = "action"


# ---------------------------------------------------------------------------
# Engine inputs
# ---------------------------------------------------------------------------

class Grade(FrozenModel):
    score: float = Field(ge=0, le=100)


class Assessment(FrozenModel):
    """A single assessed component; weight is its fraction of the module mark."""
    id: str
    name: str
    weight: float = Field(ge=0, le=1)
    grade: Optional[Grade] = None

    @property
    def is_graded(self) -> bool:
        return self.grade is not None

    @property
    def score(self) -> Optional[float]:
        return self.grade.score if self.grade is not None else None


class Module(FrozenModel):
    """A taught module at FHEQ level 5 or 6 with its ordered assessments."""
    id: str
    code: str
    name: str
    credits: int = Field(gt=0)
    level: Literal[5, 6]
    assessments: List[Assessment] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------

class ModuleAverage(CamelModel):
    """Average over the graded portion of a module and how much of it is known."""
    average: float
    completion_ratio: float


class ClassificationResult(CamelModel):
    """Projected degree classification."""
    classification: Classification
    weighted_average: float
    level5_average: Optional[float] = None
    level6_average: Optional[float] = None
    credits_completed: int
    total_credits: int
    confidence: float


class GradeNeeded(CamelModel):
    """
    Average required on all ungraded work to reach a target boundary.

    `grade` is clamped to 0-100 for display; `raw` keeps the unclamped
    requirement so callers can tell "100%" apart from "impossible".
    """
    target: Classification
    boundary: float
    grade: float
    raw: float
    reachable: bool


class LeverageResult(CamelModel):
    """Impact of one ungraded assessment on the final weighted average."""
    assessment_id: str
    assessment_name: str
    module_name: str
    module_code: str
    leverage: float
    description: str
    crosses_boundary: bool
    boundary_detail: Optional[str] = None


class RiskAnalysisResult(CamelModel):
    """Margin of safety above the current classification boundary."""
    current_boundary: float
    distance_above: float
    risk_level: RiskLevel
    drop_threshold: Optional[float] = None
    message: str


# ---------------------------------------------------------------------------
# Insights: one model per kind, discriminated on `kind`
# ---------------------------------------------------------------------------

class _InsightBase(CamelModel):
    icon: str
    title: str
    description: str
    type: InsightType


class StrongestModuleInsight(_InsightBase):
    kind: Literal["strongest_module"] = "strongest_module"
    icon: str = "TrendingUp"
    type: InsightType = InsightType.SUCCESS
    module_code: str
    module_name: str
    average: float


class WeakestModuleInsight(_InsightBase):
    kind: Literal["weakest_module"] = "weakest_module"
    icon: str = "AlertTriangle"
    type: InsightType = InsightType.WARNING
    module_code: str
    module_name: str
    average: float


class PathToTierInsight(_InsightBase):
    kind: Literal["path_to_tier"] = "path_to_tier"
    icon: str = "Target"
    type: InsightType = InsightType.ACTION
    tier: Classification
    boundary: float
    grade_needed: float


class TierOutOfReachInsight(_InsightBase):
    kind: Literal["tier_out_of_reach"] = "tier_out_of_reach"
    icon: str = "Target"
    type: InsightType = InsightType.INFO
    tier: Classification
    boundary: float
    grade_needed: float


class NearBoundaryInsight(_InsightBase):
    kind: Literal["near_boundary"] = "near_boundary"
    icon: str = "AlertTriangle"
    type: InsightType = InsightType.WARNING
    module_code: str
    module_name: str
    boundary: float
    distance: float


class JustBelowBoundaryInsight(_InsightBase):
    kind: Literal["just_below_boundary"] = "just_below_boundary"
    icon: str = "Target"
    type: InsightType = InsightType.ACTION
    module_code: str
    module_name: str
    boundary: float
    distance: float


class CompletionInsight(_InsightBase):
    kind: Literal["completion"] = "completion"
    icon: str = "PieChart"
    type: InsightType = InsightType.INFO
    percent: int


class AllGradedInsight(_InsightBase):
    kind: Literal["all_graded"] = "all_graded"
    icon: str = "CheckCircle"
    type: InsightType = InsightType.SUCCESS


class OnTrackForFirstInsight(_InsightBase):
    kind: Literal["on_track_for_first"] = "on_track_for_first"
    icon: str = "Award"
    type: InsightType = InsightType.SUCCESS
    weighted_average: float


class OutlierModuleInsight(_InsightBase):
    kind: Literal["outlier_module"] = "outlier_module"
    icon: str = "AlertTriangle"
    type: InsightType = InsightType.WARNING
    module_code: str
    module_name: str
    average: float
    deviation: float


Insight = Annotated[
    Union[
        StrongestModuleInsight,
        WeakestModuleInsight,
        PathToTierInsight,
        TierOutOfReachInsight,
        NearBoundaryInsight,
        JustBelowBoundaryInsight,
        CompletionInsight,
        AllGradedInsight,
        OnTrackForFirstInsight,
        OutlierModuleInsight,
    ],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Scenarios and campus aggregation
# ---------------------------------------------------------------------------

class WhatIfOverride(FrozenModel):
    """Hypothetical score for one assessment; None clears an existing grade."""
    assessment_id: str
    score: Optional[float] = Field(default=None, ge=0, le=100)


class ProjectionResult(CamelModel):
    """Current versus what-if classification."""
    current_classification: ClassificationResult
    scenario_classification: ClassificationResult
    grade_needed: Optional[GradeNeeded] = None
    message: str


class StudentRecord(FrozenModel):
    id: str
    name: Optional[str] = None
    modules: List[Module] = Field(default_factory=list)


class ModuleStats(CamelModel):
    code: str
    name: str
    average: float
    students: int
    first_pct: float


class ClassificationBreakdown(CamelModel):
    first: float = 0.0
    upper_second: float = 0.0
    lower_second: float = 0.0
    third: float = 0.0
    fail: float = 0.0


class CampusStats(CamelModel):
    """Cohort-wide classification and module statistics."""
    total_students: int
    overall_breakdown: ClassificationBreakdown
    module_stats: List[ModuleStats]
    average_weighted: Optional[float] = None


# ---------------------------------------------------------------------------
# HTTP payloads
# ---------------------------------------------------------------------------

class ModulesRequest(CamelModel):
    modules: List[Module]


class GradeNeededRequest(CamelModel):
    modules: List[Module]
    target: str


class SimulationRequest(CamelModel):
    modules: List[Module]
    overrides: List[WhatIfOverride] = Field(default_factory=list)
    target: Optional[str] = None


class CampusRequest(CamelModel):
    students: List[StudentRecord]


class DegreeAnalysis(CamelModel):
    """Everything the dashboard needs for one student."""
    classification: ClassificationResult
    risk: RiskAnalysisResult
    leverage: List[LeverageResult]
    insights: List[Insight]
    next_tier: Optional[GradeNeeded] = None
    summary: Dict[str, int] = Field(default_factory=dict)
