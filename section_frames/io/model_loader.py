"""
Loading and saving building models as JSON documents.

Document layout (every list optional):

    {
        "title_blocks": ["A1 Landscape"],
        "levels":   [{"ref": "L1", "name": "Level 1", "elevation": 0.0}],
        "types":    [{"ref": "T-door", "name": "Door 900", "placement": "one_level_hosted",
                      "bounding_box": {"min": [...], "max": [...]}, "parameters": {}}],
        "entities": [{"ref": "wall-1", "category": "Walls",
                      "location": {"start": [0, 0, 0], "end": [10, 0, 0]},
                      "bounding_box": {...}, "parameters": {"height": 3.0}},
                     {"ref": "door-7", "type": "T-door", "host": "wall-1",
                      "location": {"point": [5, 0, 0], "rotation": 0.0}}],
        "views":    [{"ref": "v-1", "name": "North", "view_type": "elevation",
                      "origin": [...], "right": [...], "up": [...], "view_direction": [...]}],
        "markers":  [{"ref": "m-1", "location": {"point": [...]}, "views": ["v-1"]}],
        "sheets":   [{"ref": "s-1", "number": "A101", "name": "Plans",
                      "viewports": [{"view": "v-2", "position": [0, 0]}]}]
    }

Single responsibility: turn a document into an InMemoryModelStore and back.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from section_frames.geometry.bounding_box import BoundingBox
from section_frames.model.entities import (
    Entity,
    EntityType,
    Level,
    Location,
    LocationCurve,
    LocationPoint,
    MarkerRecord,
    PlacementStrategy,
    SheetRecord,
    ViewRecord,
    ViewType,
    Viewport,
)
from section_frames.model.store import InMemoryModelStore, ModelStoreError

logger = logging.getLogger(__name__)


class ModelLoadError(Exception):
    """Model document missing, unreadable or malformed."""


def _location(data: Optional[Dict[str, Any]]) -> Optional[Location]:
    if not data:
        return None
    if 'start' in data and 'end' in data:
        return LocationCurve(data['start'], data['end'])
    if 'point' in data:
        return LocationPoint(data['point'], data.get('rotation', 0.0))
    raise ValueError(f"Location needs start/end or point, got keys {sorted(data)}")


def _parse_type(data: Dict[str, Any]) -> EntityType:
    placement = data.get('placement')
    return EntityType(
        ref=data['ref'],
        name=data.get('name', data['ref']),
        placement=PlacementStrategy(placement) if placement else None,
        bounding_box=BoundingBox.from_dict(data.get('bounding_box')),
        parameters={k: float(v) for k, v in data.get('parameters', {}).items()},
        category=data.get('category'),
    )


def _parse_entity(data: Dict[str, Any]) -> Entity:
    return Entity(
        ref=data['ref'],
        category=data.get('category'),
        type_ref=data.get('type'),
        location=_location(data.get('location')),
        bounding_box=BoundingBox.from_dict(data.get('bounding_box')),
        parameters={k: float(v) for k, v in data.get('parameters', {}).items()},
        host_ref=data.get('host'),
        facing_flipped=bool(data.get('facing_flipped', False)),
        facing_orientation=data.get('facing_orientation'),
        owner_view=data.get('owner_view'),
        view_specific=bool(data.get('view_specific', False)),
        name=data.get('name', ""),
    )


def _parse_view(data: Dict[str, Any]) -> ViewRecord:
    basis = {key: data[key] for key in ('origin', 'right', 'up', 'view_direction') if key in data}
    return ViewRecord(
        ref=data['ref'],
        name=data.get('name', data['ref']),
        view_type=ViewType(data.get('view_type', 'section')),
        section_box=BoundingBox.from_dict(data.get('section_box')),
        template_ref=data.get('template'),
        is_template=bool(data.get('is_template', False)),
        level_ref=data.get('level'),
        **basis,
    )


def _parse_marker(data: Dict[str, Any]) -> MarkerRecord:
    location = _location(data.get('location'))
    if not isinstance(location, LocationPoint):
        raise ValueError(f"Marker {data['ref']} needs a point location")
    return MarkerRecord(ref=data['ref'], location=location,
                        view_slots=tuple(data.get('views', ())))


def _parse_sheet(data: Dict[str, Any]) -> SheetRecord:
    return SheetRecord(
        ref=data['ref'],
        number=data.get('number', data['ref']),
        name=data.get('name', ""),
        title_block=data.get('title_block'),
        viewports=[
            Viewport(view_ref=vp['view'], position=tuple(vp.get('position', (0.0, 0.0))))
            for vp in data.get('viewports', [])
        ],
    )


def parse_model(document: Dict[str, Any]) -> InMemoryModelStore:
    """Build a store from a parsed JSON document.

    Raises:
        ModelLoadError: missing keys, unknown enum values, bad geometry or
            duplicate view names
    """
    if not isinstance(document, dict):
        raise ModelLoadError(f"Model document must be a JSON object, got {type(document).__name__}")

    store = InMemoryModelStore()
    try:
        for name in document.get('title_blocks', []):
            store.add_title_block(name)
        for item in document.get('levels', []):
            store.add_level(Level(ref=item['ref'], name=item.get('name', item['ref']),
                                  elevation=float(item.get('elevation', 0.0))))
        for item in document.get('types', []):
            store.add_type(_parse_type(item))
        for item in document.get('entities', []):
            store.add_entity(_parse_entity(item))
        for item in document.get('views', []):
            store.add_view(_parse_view(item))
        for item in document.get('markers', []):
            store.add_marker(_parse_marker(item))
        for item in document.get('sheets', []):
            store.add_sheet(_parse_sheet(item))
    except KeyError as e:
        raise ModelLoadError(f"Missing key {e} in model document") from e
    except (ValueError, TypeError, ModelStoreError) as e:
        raise ModelLoadError(f"Invalid model document: {e}") from e

    logger.debug(
        "Parsed model: %d entities, %d types, %d views, %d markers, %d sheets",
        len(store.entities()), len(store.types()), len(store.views()),
        len(store.markers()), len(store.sheets()),
    )
    return store


def load_model(path: Union[str, Path]) -> InMemoryModelStore:
    """Read a model JSON file.

    Raises:
        ModelLoadError: file not found, not JSON, or malformed
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except FileNotFoundError:
        raise ModelLoadError(f"Model file not found: {path}")
    except json.JSONDecodeError as e:
        raise ModelLoadError(f"Model file {path} is not valid JSON: {e}") from e
    except OSError as e:
        raise ModelLoadError(f"Could not read model file {path}: {e}") from e

    logger.info("Loading model: %s", path)
    return parse_model(document)


def _entity_to_dict(entity: Entity) -> Dict[str, Any]:
    data: Dict[str, Any] = {'ref': entity.ref}
    if entity.category is not None:
        data['category'] = entity.category
    if entity.type_ref is not None:
        data['type'] = entity.type_ref
    if entity.location is not None:
        data['location'] = entity.location.to_dict()
    if entity.bounding_box is not None:
        data['bounding_box'] = entity.bounding_box.to_dict()
    if entity.parameters:
        data['parameters'] = dict(entity.parameters)
    if entity.host_ref is not None:
        data['host'] = entity.host_ref
    if entity.facing_flipped:
        data['facing_flipped'] = True
    if entity.facing_orientation is not None:
        data['facing_orientation'] = entity.facing_orientation.tolist()
    if entity.owner_view is not None:
        data['owner_view'] = entity.owner_view
    if entity.view_specific:
        data['view_specific'] = True
    if entity.name:
        data['name'] = entity.name
    return data


def _view_to_dict(view: ViewRecord) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        'ref': view.ref,
        'name': view.name,
        'view_type': view.view_type.value,
        'origin': view.origin.tolist(),
        'right': view.right.tolist(),
        'up': view.up.tolist(),
        'view_direction': view.view_direction.tolist(),
    }
    if view.section_box is not None:
        data['section_box'] = view.section_box.to_dict()
    if view.template_ref is not None:
        data['template'] = view.template_ref
    if view.is_template:
        data['is_template'] = True
    if view.level_ref is not None:
        data['level'] = view.level_ref
    return data


def dump_model(store: InMemoryModelStore) -> Dict[str, Any]:
    """Inverse of `parse_model`."""
    return {
        'title_blocks': store.title_blocks(),
        'levels': [
            {'ref': lv.ref, 'name': lv.name, 'elevation': lv.elevation}
            for lv in store.levels()
        ],
        'types': [
            {
                'ref': t.ref,
                'name': t.name,
                'placement': t.placement.value if t.placement else None,
                'bounding_box': t.bounding_box.to_dict() if t.bounding_box else None,
                'parameters': dict(t.parameters),
                'category': t.category,
            }
            for t in store.types()
        ],
        'entities': [_entity_to_dict(e) for e in store.entities()],
        'views': [_view_to_dict(v) for v in store.views()],
        'markers': [
            {
                'ref': m.ref,
                'location': m.location.to_dict(),
                'views': [v for v in m.view_slots if v is not None],
            }
            for m in store.markers()
        ],
        'sheets': [
            {
                'ref': s.ref,
                'number': s.number,
                'name': s.name,
                'title_block': s.title_block,
                'viewports': [
                    {'view': vp.view_ref, 'position': list(vp.position)}
                    for vp in s.viewports
                ],
            }
            for s in store.sheets()
        ],
    }


def save_model(store: InMemoryModelStore, path: Union[str, Path]) -> None:
    """Write the store as a model JSON file."""
    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(dump_model(store), f, indent=2, ensure_ascii=False)
    logger.info("Saved model to %s", path)
