"""
Config system - Typed CSRF settings with layered loading.

Merge precedence (later overrides earlier):
defaults < .env file < environment variables < manual overrides
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

from dotenv import dotenv_values


logger = logging.getLogger("doorstep.config")

SAFE_METHODS: FrozenSet[str] = frozenset({"GET", "HEAD", "OPTIONS"})


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


def _split_csv(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(str(part).strip() for part in value if str(part).strip())
    raise ConfigError(f"Expected a list or comma-separated string, got {type(value).__name__}")


@dataclass(frozen=True)
class CSRFConfig:
    """
    CSRF guard settings.

    Safe methods (GET, HEAD, OPTIONS) are fixed and not part of the config.

    Attributes:
        ignore_paths: Paths exempt from validation. An entry ending in ``*``
            matches by prefix.
        session_key: Session field holding the per-session secret.
        secret_bytes: Random bytes in a freshly minted secret.
        salt_bytes: Random bytes in each token salt.
        header_names: Headers searched for the token, in order.
        body_field: Body field searched after the headers.
        accept_query_token: Also read ``body_field`` from the query string.
    """

    ignore_paths: FrozenSet[str] = field(default_factory=frozenset)
    session_key: str = "__csrfSecret"
    secret_bytes: int = 32
    salt_bytes: int = 32
    header_names: Tuple[str, ...] = (
        "csrf-token",
        "x-csrf-token",
        "xsrf-token",
        "x-xsrf-token",
    )
    body_field: str = "_csrf"
    accept_query_token: bool = True

    def __post_init__(self):
        if self.secret_bytes < 16:
            raise ConfigError("secret_bytes must be at least 16")
        if self.salt_bytes < 8:
            raise ConfigError("salt_bytes must be at least 8")
        if not self.header_names:
            raise ConfigError("header_names must name at least one header")
        if not self.session_key:
            raise ConfigError("session_key must not be empty")
        if not self.body_field:
            raise ConfigError("body_field must not be empty")
        # Header lookups are case-insensitive
        object.__setattr__(
            self, "header_names", tuple(name.lower() for name in self.header_names)
        )
        object.__setattr__(self, "ignore_paths", frozenset(self.ignore_paths))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "CSRFConfig":
        """Build a validated config from a plain mapping."""
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown CSRF config keys: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "ignore_paths":
                kwargs[key] = frozenset(_split_csv(value))
            elif key == "header_names":
                kwargs[key] = _split_csv(value)
            elif key in ("secret_bytes", "salt_bytes"):
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError(f"{key} must be an integer, got {value!r}")
                kwargs[key] = value
            elif key == "accept_query_token":
                if not isinstance(value, bool):
                    raise ConfigError(f"{key} must be a boolean, got {value!r}")
                kwargs[key] = value
            else:
                if not isinstance(value, str):
                    raise ConfigError(f"{key} must be a string, got {value!r}")
                kwargs[key] = value
        return cls(**kwargs)

    def with_ignore_paths(self, *paths: str) -> "CSRFConfig":
        """Return a copy with extra ignored paths."""
        return replace(self, ignore_paths=self.ignore_paths | frozenset(paths))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ignore_paths": sorted(self.ignore_paths),
            "session_key": self.session_key,
            "secret_bytes": self.secret_bytes,
            "salt_bytes": self.salt_bytes,
            "header_names": list(self.header_names),
            "body_field": self.body_field,
            "accept_query_token": self.accept_query_token,
        }


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > defaults
    """

    def __init__(self, env_prefix: str = "DOORSTEP_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        env_file: Optional[str] = None,
        env_prefix: str = "DOORSTEP_",
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration.

        Args:
            env_file: Path to a .env file
            env_prefix: Prefix for environment variables
            overrides: Manual overrides (highest precedence)
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_env_file(self, path: str):
        """Load config from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            logger.debug("No env file at %s", env_path)
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self, environ: Dict[str, str]):
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert DOORSTEP_CSRF__IGNORE_PATHS to nested dict."""
        key = key[len(self.env_prefix):]

        # Double underscore separates nesting levels
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        lowered = value.lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current: Any = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def csrf_config(self) -> CSRFConfig:
        """Build the CSRF guard settings from the ``csrf`` section."""
        section = self.get("csrf", {})
        if not isinstance(section, dict):
            raise ConfigError("csrf config section must be a mapping")
        return CSRFConfig.from_dict(section)
