"""
tribunalsettle/core/config.py

Engine configuration.

Sources, lowest to highest precedence:
    1. Dataclass defaults
    2. YAML file            (EngineConfig.from_yaml)
    3. Environment          (TRIBUNALSETTLE_* variables)

Environment variables:
    TRIBUNALSETTLE_PROGRAM_ID      Program address to reconcile
    TRIBUNALSETTLE_SCHEMA          "round" | "dispute"
    TRIBUNALSETTLE_PAGE_SIZE       Signatures requested per provider page
    TRIBUNALSETTLE_MAX_WORKERS     Thread pool size for transaction fetches
    TRIBUNALSETTLE_PARALLEL        "1"/"true" to fetch in parallel
    TRIBUNALSETTLE_DEFAULT_LIMIT   Entries returned when no limit is given
    TRIBUNALSETTLE_LOG_LEVEL       DEBUG | INFO | WARNING | ERROR
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from tribunalsettle.core.constants import DISPUTE_PROGRAM_ID, ROUND_PROGRAM_ID
from tribunalsettle.core.exceptions import ConfigError
from tribunalsettle.core.models import SchemaVersion


logger = logging.getLogger(__name__)

ENV_PREFIX = "TRIBUNALSETTLE_"

_TRUE  = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EngineConfig:
    schema_version: SchemaVersion = SchemaVersion.ROUND
    program_id:     Optional[str] = None
    page_size:      int = 100
    max_workers:    int = 4
    parallel:       bool = True
    default_limit:  int = 50
    log_level:      str = "WARNING"

    def __post_init__(self):
        if self.page_size < 1 or self.page_size > 1000:
            raise ConfigError("page_size must be within 1..1000", {"page_size": self.page_size})
        if self.max_workers < 1:
            raise ConfigError("max_workers must be >= 1", {"max_workers": self.max_workers})
        if self.default_limit < 1:
            raise ConfigError("default_limit must be >= 1", {"default_limit": self.default_limit})
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError("Unknown log level", {"log_level": self.log_level})

    @property
    def resolved_program_id(self) -> str:
        """Configured program id, or the default deployment for the schema."""
        if self.program_id:
            return self.program_id
        if self.schema_version is SchemaVersion.DISPUTE:
            return DISPUTE_PROGRAM_ID
        return ROUND_PROGRAM_ID

    # ── Loading ───────────────────────────────────────────────

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EngineConfig":
        known   = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError("Unknown configuration keys", {"keys": ", ".join(unknown)})

        values: Dict[str, Any] = {}
        for key, raw in data.items():
            values[key] = _coerce(key, raw)
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Path) -> "EngineConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigError("Config file not found", {"path": str(path)})
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError("Config file is not valid YAML", {"path": str(path), "error": str(e)})
        if not isinstance(data, dict):
            raise ConfigError("Config root must be a mapping", {"path": str(path)})

        # Accept either a flat mapping or one nested under "tribunalsettle".
        data = data.get("tribunalsettle", data)
        logger.debug("Loaded config from %s", path)
        return cls.from_mapping(data)

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Return a copy with TRIBUNALSETTLE_* overrides applied."""
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for f in fields(self):
            key = ENV_PREFIX + ("SCHEMA" if f.name == "schema_version" else f.name.upper())
            if key in environ:
                overrides[f.name] = _coerce(f.name, environ[key])
        if overrides:
            logger.debug("Environment overrides: %s", ", ".join(sorted(overrides)))
        return replace(self, **overrides)

    @classmethod
    def load(
        cls,
        path:    Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "EngineConfig":
        base = cls.from_yaml(path) if path else cls()
        return base.with_env(environ)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version.value,
            "program_id":     self.resolved_program_id,
            "page_size":      self.page_size,
            "max_workers":    self.max_workers,
            "parallel":       self.parallel,
            "default_limit":  self.default_limit,
            "log_level":      self.log_level,
        }


def _coerce(key: str, raw: Any) -> Any:
    try:
        if key == "schema_version":
            return raw if isinstance(raw, SchemaVersion) else SchemaVersion(str(raw).lower())
        if key in ("page_size", "max_workers", "default_limit"):
            return int(raw)
        if key == "parallel":
            if isinstance(raw, bool):
                return raw
            text = str(raw).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise ValueError(f"not a boolean: {raw!r}")
        if key == "log_level":
            return str(raw).upper()
        return None if raw is None else str(raw)
    except ValueError as e:
        raise ConfigError("Invalid configuration value", {"key": key, "error": str(e)})
