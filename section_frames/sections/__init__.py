"""Section boxes, view transforms and view creation."""

from section_frames.sections.builder import (
    SectionSpec,
    ViewTransform,
    build_cross_section_spec,
    build_elevation_spec,
    look_at,
    section_transform,
)
from section_frames.sections.generator import SectionGenerator, assign_unique_name

__all__ = [
    "SectionSpec",
    "ViewTransform",
    "build_cross_section_spec",
    "build_elevation_spec",
    "look_at",
    "section_transform",
    "SectionGenerator",
    "assign_unique_name",
]
