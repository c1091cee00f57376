from __future__ import annotations

import importlib
from collections.abc import MutableMapping
from typing import TypeVar

T = TypeVar("T")


def register_named(registry: MutableMapping[str, T], name: str):
    """Decorator to register a transport (or any factory) under a string key."""

    def decorator(obj: T) -> T:
        registry[name] = obj
        return obj

    return decorator


def resolve_registered(
    registry: MutableMapping[str, T],
    name: str,
    *,
    package: str,
    unknown_label: str,
    module_names: MutableMapping[str, str] | None = None,
) -> T:
    """Resolve a registry entry, importing `<package>.<module>` on first use.

    `module_names` maps a registry key to its module when they differ
    (e.g. "serial" lives in `serial_port` so it does not shadow pyserial).
    """
    import_err: Exception | None = None
    if name not in registry:
        module = (module_names or {}).get(name, name)
        try:
            importlib.import_module(f"{package}.{module}")
        except Exception as e:
            import_err = e
    if name not in registry:
        hint = f" (import failed: {import_err})" if import_err else ""
        raise ValueError(
            f"Unknown {unknown_label} '{name}'. "
            f"Available: {', '.join(registry.keys()) or 'none'}{hint}"
        )
    return registry[name]


__all__ = ["register_named", "resolve_registered"]
