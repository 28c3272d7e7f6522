"""
Selection filter for the auto-elevation batch.

Category tags are opaque strings from the model; the presets only give
friendly labels to the common ones.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from section_frames.frames.placement import PlacementKind, classify
from section_frames.model.entities import Entity, EntityRef
from section_frames.model.store import ModelStore, ModelStoreError

logger = logging.getLogger(__name__)

CATEGORY_PRESETS: Dict[str, List[str]] = {
    "Walls": ["Walls"],
    "Windows": ["Windows"],
    "Doors": ["Doors"],
    "Columns": ["Columns", "Structural Columns"],
    "Framing": ["Structural Framing"],
    "Furniture": ["Furniture", "Furniture Systems"],
    "Casework": ["Casework"],
    "Generic Models": ["Generic Models"],
    "Plumbing": ["Plumbing Fixtures"],
    "Mechanical": ["Mechanical Equipment"],
}


def flatten_presets(labels: Iterable[str]) -> List[str]:
    """Expand preset labels to category tags.

    Labels that are not presets are taken as category tags themselves.
    Order is kept and duplicates dropped.
    """
    tags: List[str] = []
    for label in labels:
        for tag in CATEGORY_PRESETS.get(label, [label]):
            if tag not in tags:
                tags.append(tag)
    return tags


class SelectionFilter:
    """Accepts entities by category tag or placement kind.

    An empty filter accepts every entity that is not view specific.
    """

    def __init__(
        self,
        categories: Optional[Iterable[str]] = None,
        kinds: Optional[Iterable[PlacementKind]] = None,
    ) -> None:
        self.categories: Set[str] = set(categories or ())
        self.kinds: Set[PlacementKind] = set(kinds or ())

    @classmethod
    def from_labels(cls, labels: Sequence[str]) -> 'SelectionFilter':
        return cls(categories=flatten_presets(labels))

    @property
    def is_empty(self) -> bool:
        return not self.categories and not self.kinds

    def accepts(self, entity: Entity, context: ModelStore) -> bool:
        if entity.view_specific:
            return False
        if self.is_empty:
            return True
        if entity.category in self.categories:
            return True
        if self.kinds:
            return classify(entity, context).kind in self.kinds
        return False

    def __repr__(self) -> str:
        kinds = sorted(k.value for k in self.kinds)
        return f"SelectionFilter(categories={sorted(self.categories)}, kinds={kinds})"


def filter_selection(
    refs: Iterable[EntityRef],
    context: ModelStore,
    selection_filter: Optional[SelectionFilter] = None,
) -> List[EntityRef]:
    """Refs accepted by `selection_filter`; unknown refs are dropped."""
    selection_filter = selection_filter or SelectionFilter()
    accepted = []
    for ref in refs:
        try:
            entity = context.entity(ref)
        except ModelStoreError as e:
            logger.warning("Skipping %s: %s", ref, e)
            continue
        if selection_filter.accepts(entity, context):
            accepted.append(ref)
        else:
            logger.debug("Filtered out %s (category=%s)", ref, entity.category)
    return accepted
