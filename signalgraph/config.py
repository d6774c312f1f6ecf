"""Configuration loading for signalgraph (.signalgraph.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".signalgraph.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ScannerConfig:
    """File discovery and worker-pool settings."""

    extensions: List[str] = field(default_factory=lambda: [".gd"])
    exclude_dirs: List[str] = field(default_factory=list)
    serial_threshold: int = 8
    max_workers: int = 8
    progress_interval: int = 10


@dataclass
class DetectorConfig:
    """Confidence constants for unused-signal classification."""

    orphan_base: float = 0.95
    dead_emitter_base: float = 0.90
    private_penalty: float = 0.15
    inheritance_penalty: float = 0.20
    bus_penalty: float = 0.10
    autoload_penalty: float = 0.20
    min_confidence: float = 0.05


@dataclass
class ClusteringConfig:
    """Community detection tuning."""

    max_iterations: int = 100
    min_gain: float = 1e-6
    min_subcluster_size: int = 5
    depth: int = 2


@dataclass
class SignalGraphConfig:
    """Represents the settings defined in .signalgraph.yml."""

    root: Path
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    cache_dir: str = ".signalgraph"

    @property
    def cache_path(self) -> Path:
        return self.root / self.cache_dir


def load_config(config_path: Path) -> SignalGraphConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SignalGraphConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    scanner = ScannerConfig()
    scanner_data = _as_dict(data.get("scanner"))
    if scanner_data:
        extensions = _as_str_list(scanner_data.get("extensions"))
        if extensions:
            scanner.extensions = [ext if ext.startswith(".") else f".{ext}" for ext in extensions]
        scanner.exclude_dirs = _as_str_list(scanner_data.get("exclude_dirs"))
        scanner.serial_threshold = _as_int(scanner_data.get("serial_threshold"), scanner.serial_threshold)
        scanner.max_workers = _as_int(scanner_data.get("max_workers"), scanner.max_workers)
        scanner.progress_interval = _as_int(
            scanner_data.get("progress_interval"), scanner.progress_interval
        )
        if scanner.max_workers < 1:
            raise ConfigError("scanner.max_workers must be at least 1")
        if scanner.progress_interval < 1:
            raise ConfigError("scanner.progress_interval must be at least 1")

    detector = DetectorConfig()
    detector_data = _as_dict(data.get("detector"))
    for name in (
        "orphan_base",
        "dead_emitter_base",
        "private_penalty",
        "inheritance_penalty",
        "bus_penalty",
        "autoload_penalty",
        "min_confidence",
    ):
        value = _as_float(detector_data.get(name))
        if value is None:
            continue
        if not 0.0 <= value <= 1.0:
            raise ConfigError(f"detector.{name} must be between 0 and 1")
        setattr(detector, name, value)

    clustering = ClusteringConfig()
    clustering_data = _as_dict(data.get("clustering"))
    if clustering_data:
        clustering.max_iterations = _as_int(
            clustering_data.get("max_iterations"), clustering.max_iterations
        )
        min_gain = _as_float(clustering_data.get("min_gain"))
        if min_gain is not None:
            clustering.min_gain = min_gain
        clustering.min_subcluster_size = _as_int(
            clustering_data.get("min_subcluster_size"), clustering.min_subcluster_size
        )
        clustering.depth = _as_int(clustering_data.get("depth"), clustering.depth)

    cache_dir = _as_str(data.get("cache_dir")) or ".signalgraph"

    return SignalGraphConfig(
        root=root,
        scanner=scanner,
        detector=detector,
        clustering=clustering,
        cache_dir=cache_dir,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
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


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default


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
    "ClusteringConfig",
    "ConfigError",
    "DetectorConfig",
    "ScannerConfig",
    "SignalGraphConfig",
    "load_config",
]
