"""Make-parallel alignment between two entities."""

from section_frames.alignment.engine import (
    AlignmentFailure,
    AlignmentOutcome,
    AlignmentPlan,
    apply_alignment,
    make_parallel,
    plan_alignment,
    resolve_rotatable_proxy,
)

__all__ = [
    "AlignmentFailure",
    "AlignmentOutcome",
    "AlignmentPlan",
    "apply_alignment",
    "make_parallel",
    "plan_alignment",
    "resolve_rotatable_proxy",
]
