"""
JSON-based project configuration for section_frames.

Configuration hierarchy (later overrides earlier):
1. Built-in defaults (the dataclasses below)
2. User config (~/.sframes.json)
3. Project config (./.sframes.json, or next to the model file)
4. Explicit --config path / CLI arguments

Example .sframes.json:
{
    "frames": {
        "default_height": 10.0,
        "height_parameter": "height"
    },
    "sections": {
        "offset": 1.0,
        "depth_offset": 1.0
    },
    "naming": {
        "max_rename_attempts": 10,
        "rename_marker": "*"
    },
    "sheets": {
        "number_prefix": "SF_",
        "viewport_x": -0.85,
        "viewport_y": 0.65
    }
}
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".sframes.json"


@dataclass
class FramesConfig:
    """Frame inference settings."""
    default_height: float = 10.0  # curve-based entities without a height parameter
    height_parameter: str = "height"
    degenerate_length: float = 1e-9  # directions shorter than this are unusable


@dataclass
class SectionConfig:
    """Section box margins and which views the batch creates."""
    offset: float = 1.0  # added to half width and half height
    depth_offset: float = 1.0  # added to half depth
    create_cross_section: bool = False
    create_plan: bool = False


@dataclass
class NamingConfig:
    """View naming and collision retries."""
    max_rename_attempts: int = 10
    rename_marker: str = "*"
    elevation_suffix: str = "_Elevation"
    cross_section_suffix: str = "_CrossSection"
    plan_suffix: str = "_Plan"


@dataclass
class SheetConfig:
    """Sheet creation for the auto-elevation batch."""
    number_prefix: str = "SF_"
    name_suffix: str = ""
    title_block: Optional[str] = None  # None = store default
    viewport_x: float = -0.85
    viewport_y: float = 0.65


@dataclass
class AlignmentConfig:
    """Make-parallel settings."""
    parallel_tolerance: float = 1e-6
    skip_if_parallel: bool = True


@dataclass
class OutputConfig:
    """Reporting."""
    summary_limit: int = 10  # results listed by BatchResult.summary()
    report_path: str = ""
    save_model_path: str = ""


_SECTIONS = {
    'frames': FramesConfig,
    'sections': SectionConfig,
    'naming': NamingConfig,
    'sheets': SheetConfig,
    'alignment': AlignmentConfig,
    'output': OutputConfig,
}


@dataclass
class ProjectConfig:
    """Complete project configuration."""
    frames: FramesConfig = field(default_factory=FramesConfig)
    sections: SectionConfig = field(default_factory=SectionConfig)
    naming: NamingConfig = field(default_factory=NamingConfig)
    sheets: SheetConfig = field(default_factory=SheetConfig)
    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())
        logger.info("Configuration saved to %s", path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Build a configuration, ignoring unknown sections and keys."""
        config = cls()
        for section_name in _SECTIONS:
            values = data.get(section_name)
            if not isinstance(values, dict):
                continue
            section = getattr(config, section_name)
            for key, value in values.items():
                if key.startswith('_'):
                    continue
                if hasattr(section, key):
                    setattr(section, key, value)
                else:
                    logger.warning("Unknown config key %s.%s ignored", section_name, key)
        return config

    @classmethod
    def from_json(cls, json_str: str) -> 'ProjectConfig':
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ProjectConfig':
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info("Configuration loaded from %s", path)
        return cls.from_dict(data)


def find_config_file(
    model_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Find configuration file.

    Search order:
    1. Explicit config path (if provided)
    2. .sframes.json next to the model file
    3. .sframes.json in the current working directory
    4. ~/.sframes.json
    """
    if explicit_config:
        explicit = Path(explicit_config)
        if explicit.exists():
            return explicit
        logger.warning("Explicit config not found: %s", explicit)

    candidates = []
    if model_path:
        candidates.append(Path(model_path).parent / CONFIG_FILENAME)
    candidates.append(Path.cwd() / CONFIG_FILENAME)
    candidates.append(Path.home() / CONFIG_FILENAME)

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(
    model_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> ProjectConfig:
    """Load configuration, falling back to defaults when none is found or it is unreadable."""
    config_path = find_config_file(model_path, explicit_config)

    if config_path:
        try:
            return ProjectConfig.load(config_path)
        except (json.JSONDecodeError, IOError) as e:
            logger.error("Failed to load config %s: %s", config_path, e)

    return ProjectConfig()


def merge_configs(base: ProjectConfig, override: ProjectConfig) -> ProjectConfig:
    """Merge two configurations; values of `override` that differ from the
    built-in defaults win."""
    merged = ProjectConfig.from_dict(base.to_dict())

    for section_name, section_cls in _SECTIONS.items():
        defaults = section_cls()
        override_section = getattr(override, section_name)
        merged_section = getattr(merged, section_name)
        for f in fields(section_cls):
            value = getattr(override_section, f.name)
            if value != getattr(defaults, f.name):
                setattr(merged_section, f.name, value)

    return merged


def create_sample_config(path: Union[str, Path] = CONFIG_FILENAME) -> None:
    """Write a documented sample configuration file."""
    sample: Dict[str, Any] = {
        "_comment": "section_frames configuration",
        "_version": "1.0",
    }
    comments = {
        'frames': "Frame inference defaults",
        'sections': "Section box margins (model length units)",
        'naming': "View names and collision retries",
        'sheets': "Sheets created by the auto-elevation batch",
        'alignment': "Make-parallel behaviour",
        'output': "Reports",
    }
    for section_name, section_cls in _SECTIONS.items():
        sample[section_name] = {"_comment": comments[section_name], **asdict(section_cls())}

    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(sample, f, indent=2, ensure_ascii=False)

    logger.info("Sample configuration created: %s", path)
