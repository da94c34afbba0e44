"""
Backend registry.

Each backend module calls ``register()`` at import time.  ``main.py`` then
auto-discovers all backend modules via ``pkgutil.iter_modules`` so no central
list needs to be maintained; drop a file into ``backends/`` and it's live.
"""

from __future__ import annotations

_REGISTRY: dict[str, tuple[type, type]] = {}


def register(name: str, config_cls: type, backend_cls: type) -> None:
    """Register a backend under *name*.

    Args:
        name:        Backend key used in the config file (e.g. ``"local"``).
        config_cls:  Pydantic model class validating the backend's config block.
        backend_cls: ``BaseBackend`` subclass to instantiate.
    """
    _REGISTRY[name] = (config_cls, backend_cls)


def get(name: str) -> tuple[type, type] | None:
    return _REGISTRY.get(name)


def all_backends() -> dict[str, tuple[type, type]]:
    """Return a snapshot of ``{name: (config_cls, backend_cls)}`` for every
    registered backend."""
    return dict(_REGISTRY)
