"""
Runtime-tunable settings: YAML files under config/ plus in-memory overrides.

Keys are dotted paths into the merged YAML tree, for example
`leaderboard.counter.circular_bound`. Files are deep-merged in sorted path
order, so a later file overrides individual leaves of an earlier one.
Overrides set with `set()` win over every file and survive `reload()`.

Typed readers (`get_int`, `get_float`, `get_bool`) never raise on a bad
value: they log it and return the caller's default.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from rankboard.core.config.config import Config
from rankboard.core.config.errors import ConfigInitializationError, ConfigValidationError

# Plain stdlib logger: rankboard.core.logging imports this package
logger = logging.getLogger(__name__)


def _merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        elif isinstance(value, dict):
            target[key] = _merge({}, value)
        else:
            target[key] = value
    return target


def _nest(dotted: str, value: Any) -> Dict[str, Any]:
    *parents, leaf = dotted.split(".")
    tree: Dict[str, Any] = {leaf: value}
    for part in reversed(parents):
        tree = {part: tree}
    return tree


class ConfigManager:
    """
    Usage
    -----
    >>> ConfigManager.get_int("leaderboard.cas.max_attempts", 16)
    16
    >>> ConfigManager.set("leaderboard.counter.circular_bound", 999)
    """

    _config_dir: Optional[Path] = None
    _files: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _tree: Dict[str, Any] = {}
    _initialized = False
    _reloads = 0

    @classmethod
    def _read_files(cls, config_dir: Path) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        if not config_dir.is_dir():
            logger.warning("Config directory missing, using code defaults", extra={"config_dir": str(config_dir)})
            return merged

        paths = sorted([*config_dir.rglob("*.yaml"), *config_dir.rglob("*.yml")])
        for path in paths:
            try:
                data = yaml.safe_load(path.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigInitializationError(f"cannot load {path}: {exc}") from exc
            if isinstance(data, dict):
                _merge(merged, data)
            elif data is not None:
                logger.warning("Skipping YAML file without a mapping at its root", extra={"file": str(path)})

        logger.debug("YAML config loaded", extra={"config_dir": str(config_dir), "files": len(paths)})
        return merged

    @classmethod
    def _rebuild(cls) -> None:
        tree = _merge({}, cls._files)
        for dotted, value in cls._overrides.items():
            _merge(tree, _nest(dotted, value))
        cls._tree = tree

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load the YAML files. No-op when already loaded from the same directory.

        Raises
        ------
        ConfigInitializationError
            A file exists but is not valid YAML.
        """
        target = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR
        if cls._initialized and cls._config_dir == target:
            return
        cls._config_dir = target
        cls._files = cls._read_files(target)
        cls._rebuild()
        cls._initialized = True

    @classmethod
    def reload(cls) -> None:
        cls._initialized = False
        cls._reloads += 1
        cls.initialize(cls._config_dir)

    @classmethod
    def reset(cls) -> None:
        cls._config_dir = None
        cls._files = {}
        cls._overrides = {}
        cls._tree = {}
        cls._initialized = False
        cls._reloads = 0

    # ========================================================================
    # Reads
    # ========================================================================

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        if not cls._initialized:
            cls.initialize()
        node: Any = cls._tree
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return default if node is None else node

    @classmethod
    def _typed(cls, key: str, default: Any, accept) -> Any:
        value = cls.get(key, default)
        if isinstance(value, bool) != isinstance(default, bool) or not accept(value):
            logger.warning(
                "Config value has the wrong type, using default",
                extra={"config_key": key, "value": repr(value), "default": default},
            )
            return default
        return value

    @classmethod
    def get_int(cls, key: str, default: int) -> int:
        return cls._typed(key, default, lambda value: isinstance(value, int))

    @classmethod
    def get_float(cls, key: str, default: float) -> float:
        return float(cls._typed(key, default, lambda value: isinstance(value, (int, float))))

    @classmethod
    def get_bool(cls, key: str, default: bool) -> bool:
        return cls._typed(key, default, lambda value: isinstance(value, bool))

    # ========================================================================
    # Writes
    # ========================================================================

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """
        Override one key in memory.

        Raises
        ------
        ConfigValidationError
            Empty key, or the key names a section and `value` is not a mapping.
        """
        if not key or not key.strip("."):
            raise ConfigValidationError("config key must be a non-empty dotted path")
        if isinstance(cls.get(key), dict) and not isinstance(value, dict):
            raise ConfigValidationError(f"{key} is a section and cannot be set to a scalar")

        cls._overrides[key] = value
        cls._rebuild()
        logger.info("Config override applied", extra={"config_key": key})

    @classmethod
    def health_snapshot(cls) -> Dict[str, Any]:
        return {
            "initialized": cls._initialized,
            "config_dir": str(cls._config_dir) if cls._config_dir else None,
            "sections": sorted(cls._tree),
            "override_count": len(cls._overrides),
            "reloads": cls._reloads,
        }
