"""
Shared pytest fixtures for the rulemind test suite.

Usage in tests:
    def test_something(mind_factory):
        mind_factory.write("a.json", [mind_factory.rule("hi", "Hello!")])
        kb = mind_factory.create_knowledge()

    def test_with_data(sample_knowledge):
        # hello rule (score 10) + catch-all rule (score 1), already observed
        ...
"""

import pytest

from rulemind.core.ranker import IdeaRanker
from tests.factories import MindTestFactory


@pytest.fixture
def mind_factory(tmp_path):
    """An empty MindTestFactory rooted in tmp_path."""
    return MindTestFactory(tmp_path)


@pytest.fixture
def sample_knowledge(mind_factory):
    """Knowledge base holding the reference hello + catch-all rules."""
    return mind_factory.create_sample_knowledge()


@pytest.fixture
def ranker(sample_knowledge):
    return IdeaRanker(sample_knowledge)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep RULEMIND_* settings from the outer environment out of tests."""
    for key in (
        "RULEMIND_INIT_PATH", "RULEMIND_WATCH_PATH", "RULEMIND_CANDIDATE_POOL",
        "RULEMIND_RELOAD_INTERVAL", "RULEMIND_LOG_DEPTH", "RULEMIND_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
