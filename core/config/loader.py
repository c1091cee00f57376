"""YAML loader and section builders for station configuration."""

from __future__ import annotations

import glob
import importlib
import os
from typing import Any

import yaml

from .schema import (
    ConfigError,
    HmiConfigBlock,
    LabelConfigBlock,
    LoadedConfig,
    PrinterConfigBlock,
    RuntimeConfig,
    ScaleConfigBlock,
)

_SECTIONS = {
    "runtime": RuntimeConfig,
    "scale": ScaleConfigBlock,
    "printer": PrinterConfigBlock,
    "label": LabelConfigBlock,
    "hmi": HmiConfigBlock,
}


def load_config(config_dir: str = "config") -> LoadedConfig:
    main_path = _find_main_config(config_dir)
    main_data = _read_yaml(main_path)
    _validate_allowed_keys(main_data, set(_SECTIONS) | {"imports"}, "", main_path)
    imports = main_data.get("imports") or []
    _import_modules(imports, main_path)

    blocks = {
        name: _build_section(cls, main_data.get(name), main_path, section=name)
        for name, cls in _SECTIONS.items()
    }

    label: LabelConfigBlock = blocks["label"]
    paths = {"main": main_path}
    label_defaults: dict[str, Any] = {}
    if label.defaults_file:
        defaults_path = label.defaults_file
        if not os.path.isabs(defaults_path):
            defaults_path = os.path.join(config_dir, defaults_path)
        if not os.path.exists(defaults_path):
            raise ConfigError(f"Label defaults not found: {defaults_path}")
        label_defaults = _read_yaml(defaults_path)
        paths["label"] = defaults_path

    return LoadedConfig(
        imports=imports,
        runtime=blocks["runtime"],
        scale=blocks["scale"],
        printer=blocks["printer"],
        label=label,
        hmi=blocks["hmi"],
        label_defaults={k: ("" if v is None else str(v)) for k, v in label_defaults.items()},
        paths=paths,
    )


def _find_main_config(config_dir: str) -> str:
    patterns = [
        os.path.join(config_dir, "main_*.yaml"),
        os.path.join(config_dir, "main_*.yml"),
    ]
    candidates: list[str] = []
    for pattern in patterns:
        candidates.extend(glob.glob(pattern))
    if len(candidates) == 0:
        raise ConfigError(f"No main_*.yaml found under {config_dir}")
    if len(candidates) > 1:
        raise ConfigError(
            f"Expected exactly one main_*.yaml, found: {', '.join(sorted(candidates))}"
        )
    return candidates[0]


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"YAML root must be a mapping: {path}")
    return data


def _build_section(cls, data: Any, main_path: str, section: str):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a mapping in {main_path}")
    obj = cls()
    fields = cls.__dataclass_fields__
    for k, v in data.items():
        if k in fields:
            setattr(obj, k, v)
        else:
            raise ConfigError(f"Unknown field {section}.{k} in {main_path}")
    return obj


def _validate_allowed_keys(
    data: dict[str, Any], allowed_keys: set[str], section: str, main_path: str
) -> None:
    prefix = f"{section}." if section else ""
    for key in data.keys():
        if key not in allowed_keys:
            raise ConfigError(f"Unknown field {prefix}{key} in {main_path}")


def _import_modules(imports: Any, main_path: str):
    if imports is None:
        return
    if not isinstance(imports, list):
        raise ConfigError(f"'imports' must be a list in {main_path}")
    for path in imports:
        if not isinstance(path, str) or not path:
            raise ConfigError(f"Invalid import path {path!r} in {main_path}")
        importlib.import_module(path)


__all__ = ["load_config"]
