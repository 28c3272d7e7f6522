"""
Auto-elevation batch: one elevation view and one sheet per selected entity.

Provides:
- Per-entity elevation view creation, named after the entity type
- Optional view template, cross-section and plan views
- Sheet creation with the view placed at a fixed viewport position
- Progress tracking and reporting

All work runs in a single store transaction. A failing entity is recorded
and the batch moves on; only a failure of the transaction itself (for
example another transaction already open) ends the batch early.

Usage:
    from section_frames.batch import auto_elevation

    with LogContext(model="tower.json"):
        result = auto_elevation(["wall-1", "door-7"], store)
    print(result.summary())
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from section_frames.frames.inference import infer_frame
from section_frames.logging_config import LogContext, log_timing
from section_frames.model.entities import Entity, EntityRef, SheetRecord
from section_frames.model.store import DuplicateNameError, ModelStore, ModelStoreError
from section_frames.project_config import ProjectConfig
from section_frames.sections.generator import SectionGenerator
from section_frames.selection import SelectionFilter, filter_selection

logger = logging.getLogger(__name__)

TRANSACTION_NAME = "Auto Elevation"


@dataclass
class ElevationResult:
    """Result of one entity."""
    entity_ref: EntityRef
    view_ref: Optional[EntityRef] = None
    view_name: Optional[str] = None
    sheet_ref: Optional[EntityRef] = None
    sheet_number: Optional[str] = None
    extra_views: List[EntityRef] = field(default_factory=list)
    success: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def status(self) -> str:
        return "OK" if self.success else "FAILED"

    def to_dict(self) -> Dict:
        return {
            'entity': self.entity_ref,
            'view': self.view_ref,
            'view_name': self.view_name,
            'sheet': self.sheet_ref,
            'sheet_number': self.sheet_number,
            'extra_views': list(self.extra_views),
            'success': self.success,
            'error': self.error,
            'duration': self.duration_seconds,
        }


@dataclass
class BatchResult:
    """Result of an auto-elevation batch."""
    results: List[ElevationResult] = field(default_factory=list)
    total_duration_seconds: float = 0.0
    error: Optional[str] = None
    summary_limit: int = 10

    @property
    def total(self) -> int:
        """Number of entities processed."""
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total == 0:
            return 0.0
        return 100.0 * self.successful / self.total

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            "Auto Elevation Summary",
            "=" * 40,
            f"Total entities:  {self.total}",
            f"Successful:      {self.successful}",
            f"Failed:          {self.failed}",
            f"Success rate:    {self.success_rate:.1f}%",
            f"Total time:      {self.total_duration_seconds:.1f}s",
            "",
        ]
        if self.error:
            lines.append(f"Batch error: {self.error}")
            lines.append("")

        created = [r for r in self.results if r.success]
        if created:
            lines.append("Created:")
            for r in created[:self.summary_limit]:
                lines.append(f"  - {r.view_name} on sheet {r.sheet_number}")
            if len(created) > self.summary_limit:
                lines.append(f"  ... and {len(created) - self.summary_limit} more.")

        if self.failed > 0:
            lines.append("Failed:")
            for r in self.results:
                if not r.success:
                    lines.append(f"  - {r.entity_ref}: {r.error}")

        return "\n".join(lines)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'total': self.total,
            'successful': self.successful,
            'failed': self.failed,
            'success_rate': self.success_rate,
            'total_duration_seconds': self.total_duration_seconds,
            'error': self.error,
            'results': [r.to_dict() for r in self.results],
        }


def _type_name(entity: Entity, context: ModelStore) -> str:
    if entity.type_ref is not None:
        try:
            return context.entity_type(entity.type_ref).name
        except ModelStoreError:
            logger.debug("Type %s of %s not found", entity.type_ref, entity.ref)
    return entity.name or entity.category or "Entity"


def assign_sheet_identity(
    context: ModelStore,
    sheet: SheetRecord,
    number: str,
    name: str,
    config: ProjectConfig,
) -> str:
    """Set sheet number and name, appending the rename marker to a taken number.

    Raises:
        DuplicateNameError: every attempt collided
    """
    candidate = number
    for _ in range(config.naming.max_rename_attempts):
        try:
            context.set_sheet_identity(sheet.ref, candidate, name)
            return candidate
        except DuplicateNameError:
            candidate += config.naming.rename_marker
    raise DuplicateNameError(
        f"Sheet number {number!r} still taken after {config.naming.max_rename_attempts} attempts"
    )


def elevate_entity(
    entity_ref: EntityRef,
    context: ModelStore,
    config: ProjectConfig,
    view_template: Optional[EntityRef] = None,
    title_block: Optional[str] = None,
) -> ElevationResult:
    """Create the elevation view and sheet of one entity.

    Must run inside an open transaction. The entity's changes are made in a
    sub-transaction, so a failure leaves the model as it was before the
    call. Failures are recorded in the result, never raised.
    """
    start_time = time.perf_counter()
    result = ElevationResult(entity_ref=entity_ref)

    try:
        with context.sub_transaction(f"Elevate {entity_ref}"):
            entity = context.entity(entity_ref)
            frame = infer_frame(entity_ref, context, config.frames)
            if frame.is_degenerate(config.frames.degenerate_length):
                raise ValueError(f"invalid frame ({frame.reason or 'no direction'})")

            type_name = _type_name(entity, context)
            base_name = f"{type_name}_{entity_ref}"
            generator = SectionGenerator(context, frame, config)

            view = generator.create_elevation(base_name)
            if view is None:
                raise ModelStoreError("elevation view could not be created")

            if view_template is not None:
                try:
                    context.set_view_template(view.ref, view_template)
                except ModelStoreError as e:
                    logger.warning("Template not applied to %s: %s", view.name, e)

            extra_views = []
            if config.sections.create_cross_section:
                cross = generator.create_cross_section(base_name)
                if cross is not None:
                    extra_views.append(cross.ref)
            if config.sections.create_plan:
                plan = generator.create_plan(base_name)
                if plan is not None:
                    extra_views.append(plan.ref)

            sheet = context.create_sheet(title_block)
            context.place_view_on_sheet(
                sheet.ref, view.ref, (config.sheets.viewport_x, config.sheets.viewport_y)
            )
            category = entity.category or "Entity"
            sheet_number = assign_sheet_identity(
                context,
                sheet,
                f"{config.sheets.number_prefix}{type_name}_{entity_ref}",
                f"{category} - Elevation{config.sheets.name_suffix}",
                config,
            )

        # Only refs that survived the sub-transaction are reported
        result.view_ref = view.ref
        result.view_name = view.name
        result.extra_views = extra_views
        result.sheet_ref = sheet.ref
        result.sheet_number = sheet_number
        result.success = True

    except Exception as e:
        result.success = False
        result.error = str(e)
        logger.error("Failed to elevate %s: %s", entity_ref, e)

    result.duration_seconds = time.perf_counter() - start_time
    return result


def auto_elevation(
    entity_refs: Sequence[EntityRef],
    context: ModelStore,
    config: Optional[ProjectConfig] = None,
    view_template: Optional[EntityRef] = None,
    selection_filter: Optional[SelectionFilter] = None,
    progress_callback: Optional[Callable[[int, int, ElevationResult], None]] = None,
) -> BatchResult:
    """Create elevation views and sheets for the selected entities.

    Args:
        entity_refs: candidate entities
        context: model store
        config: project configuration (defaults when None)
        view_template: template view applied to each new elevation
        selection_filter: restricts `entity_refs` (view-specific entities
            are always dropped)
        progress_callback: called after each entity: (current, total, result)

    Returns:
        BatchResult with per-entity statistics
    """
    config = config or ProjectConfig()
    start_time = time.perf_counter()
    batch = BatchResult(summary_limit=config.output.summary_limit)

    selected = filter_selection(entity_refs, context, selection_filter)
    if not selected:
        logger.warning("No entities to elevate")
        batch.total_duration_seconds = time.perf_counter() - start_time
        return batch

    title_block = config.sheets.title_block or context.default_title_block()
    if title_block is None:
        logger.info("No title block in the model, sheets are created without one")

    try:
        with LogContext(transaction=TRANSACTION_NAME), \
                log_timing(logger, TRANSACTION_NAME, logging.INFO, entities=len(selected)) as info, \
                context.transaction(TRANSACTION_NAME):
            for i, ref in enumerate(selected, 1):
                with LogContext(entity=ref):
                    result = elevate_entity(ref, context, config, view_template, title_block)
                batch.results.append(result)

                if progress_callback:
                    progress_callback(i, len(selected), result)

                logger.info(
                    "[%d/%d] %s: %s (%.2fs)",
                    i, len(selected), ref, result.status, result.duration_seconds,
                )
            info['created'] = batch.successful
    except ModelStoreError as e:
        batch.error = str(e)

    batch.total_duration_seconds = time.perf_counter() - start_time
    logger.info(
        "Auto elevation complete: %d/%d successful (%.1f%%) in %.1fs",
        batch.successful, batch.total, batch.success_rate, batch.total_duration_seconds,
    )
    return batch
