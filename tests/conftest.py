"""Shared pytest fixtures for tinywire tests."""

import pytest

from tinywire.container import Container
from tinywire.inspector import MetadataInspector
from tinywire.lock_mode import LockMode


@pytest.fixture()
def container() -> Container:
    """Default container with per-type singleton construction locks."""
    return Container()


@pytest.fixture()
def relaxed_container() -> Container:
    """Container without singleton construction locks."""
    return Container(lock_mode=LockMode.NONE)


@pytest.fixture()
def inspector() -> MetadataInspector:
    """MetadataInspector instance."""
    return MetadataInspector()
