# SPDX-License-Identifier: AGPL-3.0-only
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
try:
    import tomllib
except ImportError:
    import tomli as tomllib

from .constants import DEFAULT_BUDGET_MS, DEFAULT_SKIP_TAG, SKIP_TAGS_ENV, TEST_MODES

# Default configuration structure
DEFAULT_CONFIG = {
    "engine": None,  # "module:attr" entrypoint
    "disabled_rules": [],
    "skip_tags": [],  # added to DEFAULT_SKIP_TAG and the env-injected tags
    "test": "error",  # or "todo": violations warn instead of failing
    "budget_ms": DEFAULT_BUDGET_MS,
    "chunked": True,
}

CONFIG_FILENAME = "accesslint.toml"


class ConfigError(ValueError):
    pass


def env_skip_tags(environ: Optional[Dict[str, str]] = None) -> List[str]:
    """Extra skip tags injected at build time through the environment.

    Accepts a JSON list (``["wip", "legacy"]``) or a comma separated string.
    """
    raw = (environ if environ is not None else os.environ).get(SKIP_TAGS_ENV, "").strip()
    if not raw:
        return []
    if raw.startswith("["):
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"{SKIP_TAGS_ENV} is not valid JSON: {e}")
        if not isinstance(value, list):
            raise ConfigError(f"{SKIP_TAGS_ENV} must be a JSON list")
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in raw.split(",") if part.strip()]


def _as_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{key}' must be a list of strings")
    return [str(v).strip() for v in value if str(v).strip()]


class Config:
    def __init__(self, data: Optional[Dict[str, Any]] = None, path: Optional[Path] = None):
        merged = dict(DEFAULT_CONFIG)
        merged.update(data or {})
        self.data = merged
        self.path = path
        self._validate()

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load configuration from accesslint.toml or pyproject's [tool.accesslint].

        Without an explicit path the current directory is searched; when no file
        carries a configuration the defaults apply.
        """
        if path is None:
            cwd = Path.cwd()
            for candidate in (cwd / CONFIG_FILENAME, cwd / "pyproject.toml"):
                if candidate.exists():
                    found = cls._read(candidate)
                    if found is not None:
                        return cls(found, candidate)
            return cls()

        path = Path(path)
        if not path.exists():
            raise ConfigError(f"No configuration found at {path}")
        return cls(cls._read(path) or {}, path)

    @staticmethod
    def _read(path: Path) -> Optional[Dict[str, Any]]:
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse {path}: {e}")

        if path.name == "pyproject.toml":
            return data.get("tool", {}).get("accesslint")
        return data.get("accesslint", data)

    def _validate(self) -> None:
        if self.test_mode not in TEST_MODES:
            raise ConfigError(f"'test' must be one of {', '.join(TEST_MODES)}, got {self.test_mode!r}")
        try:
            budget = float(self.data.get("budget_ms"))
        except (TypeError, ValueError):
            raise ConfigError(f"'budget_ms' must be a number, got {self.data.get('budget_ms')!r}")
        if budget <= 0:
            raise ConfigError("'budget_ms' must be positive")
        _as_list(self.data.get("disabled_rules"), "disabled_rules")
        _as_list(self.data.get("skip_tags"), "skip_tags")

    @property
    def engine(self) -> Optional[str]:
        value = self.data.get("engine")
        return str(value) if value else None

    @property
    def disabled_rules(self) -> List[str]:
        return _as_list(self.data.get("disabled_rules"), "disabled_rules")

    @property
    def configured_skip_tags(self) -> List[str]:
        return _as_list(self.data.get("skip_tags"), "skip_tags")

    @property
    def test_mode(self) -> str:
        return str(self.data.get("test") or "error").strip().lower()

    @property
    def budget_ms(self) -> float:
        return float(self.data.get("budget_ms"))

    @property
    def chunked(self) -> bool:
        return bool(self.data.get("chunked", True))

    def skip_tags(self, environ: Optional[Dict[str, str]] = None) -> List[str]:
        tags: List[str] = []
        for tag in [DEFAULT_SKIP_TAG, *env_skip_tags(environ), *self.configured_skip_tags]:
            if tag not in tags:
                tags.append(tag)
        return tags

    def with_overrides(self, **overrides: Any) -> "Config":
        data = dict(self.data)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return Config(data, self.path)
