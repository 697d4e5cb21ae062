"""Campus-wide aggregation: classification breakdown and per-module statistics."""

from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from honours.classification import calculate_classification, module_average, round_half_up
from honours.models import CampusStats, Classification, ClassificationBreakdown, ModuleStats, StudentRecord


BREAKDOWN_KEYS: Dict[Classification, str] = {
    Classification.FIRST: 'first',
    Classification.UPPER_SECOND: 'upper_second',
    Classification.LOWER_SECOND: 'lower_second',
    Classification.THIRD: 'third',
}


def module_frame(students: Sequence[StudentRecord]) -> pd.DataFrame:
    """One row per (student, graded module) with the module average."""
    rows = []
    for student in students:
        for module in student.modules:
            result = module_average(module)
            if result is None:
                continue
            rows.append({
                'student_id': student.id,
                'code': module.code,
                'name': module.name,
                'average': result.average,
            })
    return pd.DataFrame(rows, columns=['student_id', 'code', 'name', 'average'])


def summarize_modules(frame: pd.DataFrame) -> List[ModuleStats]:
    """Mean average, student count and share of firsts per module code, best first."""
    if frame.empty:
        return []

    grouped = frame.groupby('code', sort=False).agg(
        name=('name', 'first'),
        average=('average', 'mean'),
        students=('average', 'size'),
        first_pct=('average', lambda s: float((s >= 70).mean())),
    )
    grouped['average'] = grouped['average'].apply(round_half_up)
    grouped = grouped.sort_values('average', ascending=False, kind='stable')

    return [
        ModuleStats(
            code=str(code),
            name=str(row['name']),
            average=float(row['average']),
            students=int(row['students']),
            first_pct=float(row['first_pct']),
        )
        for code, row in grouped.iterrows()
    ]


def build_campus_stats(students: Sequence[StudentRecord]) -> CampusStats:
    """
    Aggregate classifications across a cohort.

    Students without any graded work count towards the fail share, matching
    how the dashboard buckets anything below a Third.
    """
    classifications = []
    averages = []
    for student in students:
        result = calculate_classification(student.modules)
        classifications.append(result.classification)
        averages.append(result.weighted_average)

    counts = pd.Series([BREAKDOWN_KEYS.get(c, 'fail') for c in classifications], dtype=object).value_counts()
    denominator = max(len(students), 1)
    breakdown = ClassificationBreakdown(**{key: float(count) / denominator for key, count in counts.items()})

    return CampusStats(
        total_students=len(students),
        overall_breakdown=breakdown,
        module_stats=summarize_modules(module_frame(students)),
        average_weighted=round_half_up(float(np.mean(averages))) if averages else None,
    )
