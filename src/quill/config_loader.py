"""Load QuillConfig from quill.yaml / quill.toml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from quill._errors import ConfigError
from quill.config import QuillConfig

_KNOWN_KEYS: frozenset[str] = frozenset({
    "host",
    "port",
    "posts_dir",
    "templates_dir",
    "assets_dir",
    "title",
    "description",
    "recent_posts",
    "reload_delay",
    "throttle_max",
    "throttle_window",
    "debug",
})


def load_config(root: Path, **overrides: object) -> QuillConfig:
    """Load QuillConfig from root, optionally merging quill.yaml.

    Looks for quill.yaml, quill.yml, or quill.toml in root. If found, loads
    and merges with overrides. Overrides that are ``None`` are ignored so
    unset CLI flags never mask file values.

    Raises:
        ConfigError: If the config file is malformed or holds invalid values.

    """
    file_config = _read_quill_config(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    try:
        return QuillConfig(root=Path(root), **merged)  # type: ignore[arg-type]
    except TypeError as exc:
        msg = f"Invalid configuration in {root}: {exc}"
        raise ConfigError(msg) from exc


def _read_quill_config(root: Path) -> dict[str, object]:
    """Read quill config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("quill.yaml", "quill.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "quill.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Cannot read {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_quill_section(data, path)


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"Cannot read {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_quill_section(data, path)


def _flatten_quill_section(data: object, path: Path) -> dict[str, object]:
    """Extract quill.* keys and known top-level keys into one flat dict."""
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping at the top level"
        raise ConfigError(msg)

    result: dict[str, object] = {}
    for k, v in data.items():
        if k in _KNOWN_KEYS:
            result[k] = v
    section = data.get("quill")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _KNOWN_KEYS:
                result[k] = v
    return result
