"""Shared fixtures for the polyglot-agent test suite.

All tests run with zero real network access. HTTP is mocked with the
responses library; pacing delays are replaced with a mock.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Ensure the project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from polyglot_agent.config import PipelineConfig
from polyglot_agent.pipeline import GenerationPipeline
from tests.fixtures import RELAY_URL


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer POLYGLOT_* settings out of the tests."""
    for name in (
        "POLYGLOT_RELAY_URL",
        "POLYGLOT_FETCH_TIMEOUT",
        "POLYGLOT_SAMPLE_FALLBACK",
        "POLYGLOT_PACE_SECONDS",
        "POLYGLOT_OUTPUT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config():
    return PipelineConfig(relay_url=RELAY_URL, fetch_timeout=5)


@pytest.fixture
def pipeline(config):
    """GenerationPipeline with a mocked sleep and a fake relay endpoint."""
    return GenerationPipeline(config=config, sleep=MagicMock())


@pytest.fixture
def strict_pipeline():
    """Pipeline that fails the run instead of substituting sample content."""
    config = PipelineConfig(relay_url=RELAY_URL, fetch_timeout=5, sample_fallback=False)
    return GenerationPipeline(config=config, sleep=MagicMock())
