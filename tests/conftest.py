"""Pytest configuration for rigsweep."""
import os

import pytest

from rigsweep.base.config import set_config


def pytest_configure():
    # Keep runs deterministic regardless of the developer's shell.
    os.environ.setdefault("RIGSWEEP_GC_DEBUG", "false")


@pytest.fixture(autouse=True)
def reset_config():
    set_config(None)
    yield
    set_config(None)
