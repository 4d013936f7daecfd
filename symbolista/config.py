"""Configuration loading for symbolista (.symbolista.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .ignore import DEFAULT_IGNORED_EXTENSIONS, DEFAULT_RULE_FILE
from .models import SequenceConfig

CONFIG_FILENAME = ".symbolista.yml"

OUTPUT_FORMATS = ("table", "json", "csv")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class SequenceSettings:
    """N-gram extraction settings."""

    enabled: bool = True
    threshold: int = 2
    top_n: Optional[int] = None

    def to_config(self) -> SequenceConfig:
        return SequenceConfig(enabled=self.enabled, threshold=self.threshold, top_n=self.top_n)


@dataclass
class OutputSettings:
    """Rendering preferences for the CLI."""

    format: str = "table"
    percentages: bool = True
    metadata: bool = True


@dataclass
class SymbolistaConfig:
    """Represents the settings defined in .symbolista.yml."""

    root: Path
    workers: int = 0
    include_dotfiles: bool = False
    ascii_only: bool = True
    rule_file: str = DEFAULT_RULE_FILE
    ignored_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORED_EXTENSIONS)
    )
    sequences: SequenceSettings = field(default_factory=SequenceSettings)
    output: OutputSettings = field(default_factory=OutputSettings)


def load_config(config_path: Path) -> SymbolistaConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SymbolistaConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    config = SymbolistaConfig(root=root)

    workers = _as_int(data.get("workers"))
    if workers is not None:
        config.workers = max(workers, 0)

    include_dotfiles = _as_bool(data.get("include_dotfiles"))
    if include_dotfiles is not None:
        config.include_dotfiles = include_dotfiles

    ascii_only = _as_bool(data.get("ascii_only"))
    if ascii_only is not None:
        config.ascii_only = ascii_only

    rule_file = _as_str(data.get("rule_file"))
    if rule_file:
        config.rule_file = rule_file

    extra_extensions = _as_str_list(data.get("ignored_extensions"))
    for ext in extra_extensions:
        if ext not in config.ignored_extensions:
            config.ignored_extensions.append(ext)

    sequence_data = _as_dict(data.get("sequences"))
    if sequence_data:
        enabled = _as_bool(sequence_data.get("enabled"))
        threshold = _as_int(sequence_data.get("threshold"))
        top_n = _as_int(sequence_data.get("top_n"))
        if enabled is not None:
            config.sequences.enabled = enabled
        if threshold is not None:
            if threshold < 0:
                raise ConfigError("sequences.threshold must not be negative")
            config.sequences.threshold = threshold
        if top_n is not None:
            if top_n < 0:
                raise ConfigError("sequences.top_n must not be negative")
            config.sequences.top_n = top_n

    output_data = _as_dict(data.get("output"))
    if output_data:
        output_format = _as_str(output_data.get("format"))
        if output_format is not None:
            output_format = output_format.lower()
            if output_format not in OUTPUT_FORMATS:
                raise ConfigError(
                    f"output.format must be one of {', '.join(OUTPUT_FORMATS)}, got {output_format!r}"
                )
            config.output.format = output_format
        percentages = _as_bool(output_data.get("percentages"))
        if percentages is not None:
            config.output.percentages = percentages
        metadata = _as_bool(output_data.get("metadata"))
        if metadata is not None:
            config.output.metadata = metadata

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}

    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "OUTPUT_FORMATS",
    "OutputSettings",
    "SequenceSettings",
    "SymbolistaConfig",
    "load_config",
]
