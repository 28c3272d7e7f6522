"""
View creation for one entity frame.

SectionGenerator turns a valid frame into elevation, cross-section and plan
views in the model store. It must be used inside an open store transaction.

Each view is created with the store's provisional name and then renamed to
`{base}{suffix}`. A taken name is retried with the rename marker appended
(`Door_12_Elevation*`, `Door_12_Elevation**`, ...) up to the configured
number of attempts; when every attempt collides the view stays under its
provisional name.
"""

import logging
from typing import Callable, Optional, Tuple

from section_frames.frames.inference import Frame
from section_frames.model.entities import EntityRef, ViewRecord
from section_frames.model.store import DuplicateNameError, ModelStore, ModelStoreError
from section_frames.project_config import NamingConfig, ProjectConfig
from section_frames.sections.builder import (
    SectionSpec,
    build_cross_section_spec,
    build_elevation_spec,
    section_transform,
)

logger = logging.getLogger(__name__)


def assign_unique_name(
    context: ModelStore,
    view_ref: EntityRef,
    name: str,
    naming: Optional[NamingConfig] = None,
) -> Optional[str]:
    """Rename a view, appending the rename marker on collisions.

    Returns:
        The name the view ended up with, or None when all attempts collided.
    """
    naming = naming or NamingConfig()
    candidate = name
    for attempt in range(1, naming.max_rename_attempts + 1):
        try:
            context.rename_view(view_ref, candidate)
            if attempt > 1:
                logger.debug("View %s named %r after %d attempts", view_ref, candidate, attempt)
            return candidate
        except DuplicateNameError:
            candidate += naming.rename_marker

    logger.warning(
        "Could not name view %s %r after %d attempts, keeping provisional name",
        view_ref, name, naming.max_rename_attempts,
    )
    return None


class SectionGenerator:
    """Creates the views of one entity frame.

    Usage:
        with store.transaction("Sections"):
            generator = SectionGenerator(store, frame)
            elevation, cross_section, plan = generator.create_sections("Wall_42")
    """

    def __init__(
        self,
        context: ModelStore,
        frame: Frame,
        config: Optional[ProjectConfig] = None,
    ) -> None:
        if frame.is_degenerate():
            raise ValueError("SectionGenerator needs a valid frame with a direction")
        self.context = context
        self.frame = frame
        self.config = config or ProjectConfig()

    @property
    def offset(self) -> float:
        return self.config.sections.offset

    @property
    def depth_offset(self) -> float:
        return self.config.sections.depth_offset

    def elevation_spec(self) -> SectionSpec:
        return build_elevation_spec(self.frame, self.offset, self.depth_offset)

    def cross_section_spec(self) -> SectionSpec:
        return build_cross_section_spec(self.frame, self.offset, self.depth_offset)

    def _create_section(self, build_spec: Callable[[], SectionSpec], name: str) -> Optional[ViewRecord]:
        try:
            spec = build_spec()
            view = self.context.create_section_view(spec, section_transform(self.frame, spec))
        except (ModelStoreError, ValueError) as e:
            logger.error("Failed to create section %r: %s", name, e)
            return None
        assign_unique_name(self.context, view.ref, name, self.config.naming)
        return self.context.view(view.ref)

    def create_elevation(self, name_base: str) -> Optional[ViewRecord]:
        """Section looking along the entity."""
        return self._create_section(
            self.elevation_spec, name_base + self.config.naming.elevation_suffix
        )

    def create_cross_section(self, name_base: str) -> Optional[ViewRecord]:
        """Section looking across the entity."""
        return self._create_section(
            self.cross_section_spec, name_base + self.config.naming.cross_section_suffix
        )

    def create_plan(self, name_base: str) -> Optional[ViewRecord]:
        """Floor plan on the lowest level, or None when the model has no level."""
        try:
            levels = sorted(self.context.levels(), key=lambda level: level.elevation)
            if not levels:
                logger.warning("No level available for plan view %r", name_base)
                return None
            view = self.context.create_plan_view(levels[0].ref)
        except ModelStoreError as e:
            logger.error("Failed to create plan %r: %s", name_base, e)
            return None
        assign_unique_name(
            self.context, view.ref, name_base + self.config.naming.plan_suffix, self.config.naming
        )
        return self.context.view(view.ref)

    def create_sections(
        self, name_base: str
    ) -> Tuple[Optional[ViewRecord], Optional[ViewRecord], Optional[ViewRecord]]:
        """Elevation, cross-section and plan; a view that fails is None."""
        return (
            self.create_elevation(name_base),
            self.create_cross_section(name_base),
            self.create_plan(name_base),
        )
