"""
Configuration — Centralized settings management

Config hierarchy (highest to lowest priority):
  1. Environment variables (RULEMIND_*)
  2. Explicit config file (--config)
  3. Project config (./rulemind.yaml)
  4. Defaults

Environment variables:
- RULEMIND_INIT_PATH: static knowledge directory (default: conf/rulemind)
- RULEMIND_WATCH_PATH: watched knowledge directory (default: data/rulemind)
- RULEMIND_CANDIDATE_POOL: ideas ranked per reaction (default: 100)
- RULEMIND_RELOAD_INTERVAL: seconds between reload passes (default: 10)
- RULEMIND_LOG_DEPTH: interactions replayed as context (default: 3)
- RULEMIND_LOG_LEVEL: logging level name (default: WARNING)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .core.identity import DEFAULT_CLIENT
from .core.knowledge import KNOWLEDGE_EXTENSIONS
from .core.log import DEFAULT_DEPTH
from .core.reaction import DEFAULT_CANDIDATE_POOL
from .services.watcher import DEFAULT_RELOAD_INTERVAL

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = "rulemind.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class MindConfig:
    """Settings for a Mind: where knowledge lives and how reactions run."""
    init_path: str = "conf/rulemind"
    watch_path: str = "data/rulemind"
    extensions: List[str] = field(default_factory=lambda: list(KNOWLEDGE_EXTENSIONS))
    candidate_pool: int = DEFAULT_CANDIDATE_POOL
    reload_interval: float = DEFAULT_RELOAD_INTERVAL
    log_depth: int = DEFAULT_DEPTH
    default_client: str = DEFAULT_CLIENT
    log_level: str = "WARNING"

    @property
    def log_path(self) -> Path:
        """Interaction logs live below the watch path."""
        return Path(self.watch_path) / "log"

    def validate(self) -> None:
        """Validate configuration values."""
        if self.candidate_pool < 1:
            raise ValueError("candidate_pool must be >= 1")
        if self.reload_interval <= 0:
            raise ValueError("reload_interval must be > 0")
        if self.log_depth < 1:
            raise ValueError("log_depth must be >= 1")
        if not self.extensions:
            raise ValueError("extensions must not be empty")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log_level '{self.log_level}'. Valid: {', '.join(LOG_LEVELS)}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for display/YAML."""
        return {
            "init_path": self.init_path,
            "watch_path": self.watch_path,
            "extensions": list(self.extensions),
            "candidate_pool": self.candidate_pool,
            "reload_interval": self.reload_interval,
            "log_depth": self.log_depth,
            "default_client": self.default_client,
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MindConfig':
        """
        Create from dictionary. Unknown keys are ignored.

        Raises:
            ValueError: if a value has the wrong type
        """
        defaults = cls()
        extensions = data.get("extensions", defaults.extensions)
        if not isinstance(extensions, list) or not all(isinstance(e, str) for e in extensions):
            raise ValueError(f"extensions must be a list of strings, got {extensions!r}")
        return cls(
            init_path=str(data.get("init_path", defaults.init_path)),
            watch_path=str(data.get("watch_path", defaults.watch_path)),
            extensions=list(extensions),
            candidate_pool=_convert(data, "candidate_pool", int, defaults.candidate_pool),
            reload_interval=_convert(data, "reload_interval", float, defaults.reload_interval),
            log_depth=_convert(data, "log_depth", int, defaults.log_depth),
            default_client=str(data.get("default_client", defaults.default_client)),
            log_level=str(data.get("log_level", defaults.log_level)),
        )


def _convert(data: Dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key, default)
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be {kind.__name__}, got {value!r}") from None


class ConfigManager:
    """
    Loads and saves configuration.

    Hierarchy:
      1. Environment
      2. Explicit file
      3. Project file (./rulemind.yaml)
      4. Defaults
    """

    def __init__(self, project_dir: Optional[Path] = None, config_file: Optional[Path] = None):
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.config_file = Path(config_file) if config_file else None
        self._config: Optional[MindConfig] = None

    @property
    def project_config_path(self) -> Path:
        return self.project_dir / PROJECT_CONFIG_FILE

    def load(self) -> MindConfig:
        """Load configuration from all sources."""
        if self._config is not None:
            return self._config

        config_data: Dict[str, Any] = {}

        # Layer 1: Project config
        config_data = self._merge(config_data, self._read_yaml(self.project_config_path))

        # Layer 2: Explicit config file (higher priority)
        if self.config_file is not None:
            config_data = self._merge(config_data, self._read_yaml(self.config_file))

        # Layer 3: Environment overrides
        config_data = self._merge(config_data, _env_overrides())

        self._config = MindConfig.from_dict(config_data)
        return self._config

    def save_project(self, config: MindConfig):
        """Save configuration to the project config file."""
        self.project_config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.project_config_path, 'w') as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False)

        self._config = config

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring malformed config %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top level must be a mapping", path)
            return {}
        return data

    def _merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts, override wins."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value
        return result

    def display(self) -> str:
        """Format config for display."""
        config = self.load()
        lines = ["Configuration:", ""]
        for key, value in config.to_dict().items():
            lines.append(f"  {key}: {value}")
        lines.extend([
            "",
            "Config files:",
            f"  Project: {self.project_config_path}",
        ])
        if self.config_file is not None:
            lines.append(f"  Explicit: {self.config_file}")
        return "\n".join(lines)


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if os.environ.get("RULEMIND_INIT_PATH"):
        overrides["init_path"] = os.environ["RULEMIND_INIT_PATH"]
    if os.environ.get("RULEMIND_WATCH_PATH"):
        overrides["watch_path"] = os.environ["RULEMIND_WATCH_PATH"]
    if os.environ.get("RULEMIND_LOG_LEVEL"):
        overrides["log_level"] = os.environ["RULEMIND_LOG_LEVEL"]

    candidate_pool = _get_int_env("RULEMIND_CANDIDATE_POOL")
    if candidate_pool is not None:
        overrides["candidate_pool"] = candidate_pool
    reload_interval = _get_float_env("RULEMIND_RELOAD_INTERVAL")
    if reload_interval is not None:
        overrides["reload_interval"] = reload_interval
    log_depth = _get_int_env("RULEMIND_LOG_DEPTH")
    if log_depth is not None:
        overrides["log_depth"] = log_depth
    return overrides


def _get_int_env(key: str) -> Optional[int]:
    """Get integer from environment variable (None if unset or invalid)."""
    value = os.environ.get(key, "")
    if value:
        try:
            return int(value)
        except ValueError:
            pass
    return None


def _get_float_env(key: str) -> Optional[float]:
    """Get float from environment variable (None if unset or invalid)."""
    value = os.environ.get(key, "")
    if value:
        try:
            return float(value)
        except ValueError:
            pass
    return None


# Convenience function
def get_config(project_dir: Optional[Path] = None, config_file: Optional[Path] = None) -> MindConfig:
    """Load configuration for a project."""
    return ConfigManager(project_dir, config_file).load()
