"""Shared fixtures for unit tests."""

import pytest

from pyr_dev.analysis.code_analyzer import UniversalCodeAnalyzer
from pyr_dev.core.code_agent import CodeAgent

from fakes import make_provider


@pytest.fixture
def provider():
    return make_provider()


@pytest.fixture
def analyzer():
    return UniversalCodeAnalyzer()


@pytest.fixture
def code_agent(provider, analyzer):
    return CodeAgent(provider, analyzer)
