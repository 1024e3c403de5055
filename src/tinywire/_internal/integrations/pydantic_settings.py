from __future__ import annotations

import importlib
import warnings
from typing import Any

from tinywire._internal.type_checks import is_runtime_class

_PYDANTIC_V1_WARNING_PATTERN = (
    r"Core Pydantic V1 functionality isn't compatible with Python 3\.14 or greater\."
)
_SETTINGS_MODULES = ("pydantic_settings", "pydantic.v1")


def _load_base_settings(module_name: str) -> type[Any] | None:
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        return None
    base_settings = getattr(module, "BaseSettings", None)
    if isinstance(base_settings, type):
        return base_settings
    return None


def _discover_settings_bases() -> tuple[type[Any], ...]:
    bases: list[type[Any]] = []
    with warnings.catch_warnings():
        warnings.filterwarnings(
            "ignore",
            message=_PYDANTIC_V1_WARNING_PATTERN,
            category=UserWarning,
        )
        for module_name in _SETTINGS_MODULES:
            base = _load_base_settings(module_name)
            if base is not None and base not in bases:
                bases.append(base)
    return tuple(bases)


SETTINGS_BASES: tuple[type[Any], ...] = _discover_settings_bases()


def is_pydantic_settings_subclass(candidate: object) -> bool:
    """Return whether a class is a Pydantic settings model.

    Settings models read their values from the environment once, so the
    container shares a single instance of each of them like a ``@singleton``
    class. Returns ``False`` for every candidate when neither
    ``pydantic-settings`` nor pydantic v1 is installed.

    Args:
        candidate: Class being checked.

    """
    if not is_runtime_class(candidate):
        return False
    try:
        return any(issubclass(candidate, base) for base in SETTINGS_BASES)
    except TypeError:
        return False


__all__ = [
    "SETTINGS_BASES",
    "is_pydantic_settings_subclass",
]
