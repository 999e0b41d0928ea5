"""
Shared pytest fixtures and configuration for all tests.
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

# Add src directory to path so imports work without an editable install
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from chatgraph.context import ContextFactory, RequestContext  # noqa: E402
from chatgraph.datasources import DataSources  # noqa: E402
from chatgraph.datasources.memory import (  # noqa: E402
    messages_memory_source,
    users_memory_source,
)
from chatgraph.execution import DispatchEngine  # noqa: E402
from chatgraph.graphql import build_registry  # noqa: E402
from chatgraph.schema import Registry  # noqa: E402


@pytest.fixture
def memory_sources() -> DataSources:
    """In-memory users/messages stores with a short acquisition timeout."""
    return DataSources(
        users=users_memory_source(pool_timeout=0.5),
        messages=messages_memory_source(pool_timeout=0.5),
    )


@pytest.fixture
def registry() -> Registry:
    return build_registry()


@pytest.fixture
def engine(registry: Registry) -> DispatchEngine:
    return DispatchEngine(registry)


@pytest.fixture
def context(memory_sources: DataSources) -> RequestContext:
    return ContextFactory(memory_sources).build()


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
