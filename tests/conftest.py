"""Shared builders for module fixtures."""

import pytest

from honours.models import Assessment, Grade, Module


def build_module(code, credits, level, assessments, name=None):
    """
    Build a Module from (weight, score) pairs; score None means ungraded.

    Assessment ids are '<code>-<n>' starting at 1.
    """
    return Module(
        id=code.lower(),
        code=code,
        name=name or f"{code} Module",
        credits=credits,
        level=level,
        assessments=[
            Assessment(
                id=f"{code}-{i}",
                name=f"Assessment {i}",
                weight=weight,
                grade=Grade(score=score) if score is not None else None,
            )
            for i, (weight, score) in enumerate(assessments, start=1)
        ],
    )


@pytest.fixture
def make_module():
    return build_module


@pytest.fixture
def partial_degree():
    """
    Equal level credits, partially graded.

    L5 ABC501 (30 credits): 55 on 50%, 50% outstanding
    L6 ABC601 (30 credits): 62 on 40%, 60% outstanding
    """
    return [
        build_module("ABC501", 30, 5, [(0.5, 55.0), (0.5, None)]),
        build_module("ABC601", 30, 6, [(0.4, 62.0), (0.6, None)]),
    ]
