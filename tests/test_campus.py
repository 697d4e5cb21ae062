"""Unit tests for campus aggregation module."""

import pytest

from honours.campus import build_campus_stats, module_frame, summarize_modules
from honours.models import StudentRecord


@pytest.fixture
def cohort(make_module):
    return [
        StudentRecord(id="s1", modules=[
            make_module("CS601", 20, 6, [(1.0, 75.0)], name="Compilers"),
            make_module("CS501", 20, 5, [(1.0, 65.0)], name="Databases"),
        ]),
        StudentRecord(id="s2", modules=[
            make_module("CS601", 20, 6, [(1.0, 55.0)], name="Compilers"),
            make_module("CS501", 20, 5, [(1.0, 62.0)], name="Databases"),
        ]),
        StudentRecord(id="s3", modules=[
            make_module("CS601", 20, 6, [(1.0, None)], name="Compilers"),
        ]),
    ]


def test_module_frame_skips_ungraded(cohort):
    frame = module_frame(cohort)

    assert len(frame) == 4
    assert list(frame.columns) == ['student_id', 'code', 'name', 'average']
    assert 's3' not in frame['student_id'].values


def test_summarize_modules(cohort):
    stats = summarize_modules(module_frame(cohort))

    assert [s.code for s in stats] == ["CS601", "CS501"]
    assert stats[0].name == "Compilers"
    assert stats[0].average == 65.0
    assert stats[0].students == 2
    assert stats[0].first_pct == 0.5
    assert stats[1].average == 63.5
    assert stats[1].first_pct == 0.0


def test_build_campus_stats(cohort):
    stats = build_campus_stats(cohort)

    assert stats.total_students == 3
    assert stats.overall_breakdown.first == pytest.approx(1 / 3)
    assert stats.overall_breakdown.lower_second == pytest.approx(1 / 3)
    # no graded work buckets with fail
    assert stats.overall_breakdown.fail == pytest.approx(1 / 3)
    assert stats.overall_breakdown.upper_second == 0.0
    assert stats.average_weighted == 43.0
    assert len(stats.module_stats) == 2


def test_build_campus_stats_empty():
    stats = build_campus_stats([])

    assert stats.total_students == 0
    assert stats.module_stats == []
    assert stats.average_weighted is None
    assert stats.overall_breakdown.first == 0.0
