"""
Shared test fixtures built on the in-memory fakes in ``tests.fakes``.
"""

import pytest

from humanseg.detection.service import HumanDetectionService
from tests.fakes import FakeCapability, FakeRuntime


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def capability():
    return FakeCapability()


@pytest.fixture
def service(capability, runtime):
    return HumanDetectionService(capability, runtime)
