"""
Configuration management for nodefolio.

Provides a dataclass-based configuration supporting JSON files
and environment variables.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

ENV_PREFIX = "NODEFOLIO_"


@dataclass
class ViewerSettings:
    """Viewer content box and resize limits."""
    content_width: int = 700
    content_height: int = 450
    min_width: int = 400
    min_height: int = 450


@dataclass
class BrushSettings:
    """Smudge brush parameters."""
    size: float = 60.0
    max_samples: int = 20
    strength: float = 0.95
    wetness: float = 0.5
    spacing: float = 2.0
    pickup_points: int = 8


@dataclass
class PhysicsSettings:
    """Ragdoll simulation parameters."""
    gravity_y: float = 400.0  # pixels/s^2
    accel_factor: float = 100.0
    iterations: int = 3
    max_dt: float = 1.0 / 60.0
    stiffness: float = 0.5


@dataclass
class SlideshowSettings:
    interval: float = 3.0  # seconds


@dataclass
class CableSettings:
    """Curved connection geometry."""
    curve_factor: float = 0.3
    max_curve: float = 50.0
    emblem_offset: float = 12.0
    min_length_for_emblem: float = 60.0


@dataclass
class WorkspaceSettings:
    """Pan/zoom limits for the node canvas."""
    min_scale: float = 0.1
    max_scale: float = 3.0
    zoom_intensity: float = 0.001
    home_padding: float = 100.0


@dataclass
class TextSettings:
    """Info overlay text box."""
    cache_size: int = 100
    padding: int = 15
    line_height: int = 20


@dataclass
class PipelineSettings:
    max_errors: int = 50


@dataclass
class Config:
    """
    Main configuration container.

    Example:
        config = Config.load("nodefolio.json")
        pipeline = RenderPipeline(store, "viewer", config=config)
    """
    viewer: ViewerSettings = field(default_factory=ViewerSettings)
    brush: BrushSettings = field(default_factory=BrushSettings)
    physics: PhysicsSettings = field(default_factory=PhysicsSettings)
    slideshow: SlideshowSettings = field(default_factory=SlideshowSettings)
    cables: CableSettings = field(default_factory=CableSettings)
    workspace: WorkspaceSettings = field(default_factory=WorkspaceSettings)
    text: TextSettings = field(default_factory=TextSettings)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)

    @classmethod
    def load(cls, path: str | Path) -> "Config":
        """Load configuration from a JSON file."""
        return load_config(path)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config from a (possibly partial) dictionary."""
        config = cls()
        for section in fields(cls):
            section_data = data.get(section.name, {})
            if not isinstance(section_data, dict):
                logger.warning("Ignoring non-object config section %r", section.name)
                continue
            current = getattr(config, section.name)
            known = {f.name for f in fields(current)}
            for key, value in section_data.items():
                if key in known:
                    setattr(current, key, value)
                else:
                    logger.warning("Unknown config key %s.%s", section.name, key)
        return config

    def save(self, path: str | Path) -> None:
        """Save configuration to a JSON file."""
        save_config(self, path)

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)


def load_config(path: str | Path) -> Config:
    """
    Load configuration from a JSON file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Parsed Config object

    Raises:
        FileNotFoundError: If the config file doesn't exist
        json.JSONDecodeError: If the JSON is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    return Config.from_dict(data)


def save_config(config: Config, path: str | Path) -> None:
    """
    Save configuration to a JSON file.

    Args:
        config: Configuration object to save
        path: Output path for the JSON file
    """
    path = Path(path)
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)


def create_example_config(path: str | Path = "nodefolio.json") -> Config:
    """
    Create an example configuration file.

    Args:
        path: Output path for the example config

    Returns:
        The created Config object
    """
    config = Config()
    config.save(path)
    print(f"Created example configuration: {path}")
    return config


def get_env_config(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """
    Get configuration from environment variables.

    All environment variables starting with the prefix will be included.
    Variable names are converted to lowercase with the prefix removed.

    Example:
        NODEFOLIO_SLIDESHOW__INTERVAL=5 -> {"slideshow__interval": "5"}
    """
    config = {}
    for key, value in os.environ.items():
        if key.startswith(prefix):
            config_key = key[len(prefix):].lower()
            config[config_key] = value
    return config


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return raw.lower() in ("true", "1", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def apply_env_overrides(config: Config, prefix: str = ENV_PREFIX) -> Config:
    """
    Apply ``<PREFIX>SECTION__FIELD=value`` overrides to ``config`` in place.

    Values are coerced to the type of the current setting. Malformed
    entries are logged and skipped.
    """
    for key, raw in get_env_config(prefix).items():
        if "__" not in key:
            continue
        section_name, field_name = key.split("__", 1)
        section = getattr(config, section_name, None)
        if section is None or not hasattr(section, field_name):
            logger.warning("Ignoring unknown override %s%s", prefix, key.upper())
            continue
        try:
            setattr(section, field_name, _coerce(raw, getattr(section, field_name)))
        except ValueError:
            logger.warning("Invalid value for %s%s: %r", prefix, key.upper(), raw)
    return config
