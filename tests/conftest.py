# tests/conftest.py
"""Minimal shared fixtures for test suite."""

import numpy as np
import pytest

from agents.base import Agent
from agents.strategies import SELFISH


@pytest.fixture
def seed():
    """Fixed seed for reproducibility."""
    return 42


@pytest.fixture
def rng(seed):
    """Numpy random generator with fixed seed."""
    return np.random.default_rng(seed)


def make_agent(
    agent_id: int,
    requested: list[int],
    allocated: list[int],
    agent_type: int = SELFISH,
    slots_per_agent: int | None = None,
) -> Agent:
    """Build an agent with a fixed request and allocation, bypassing the pool."""
    agent = Agent(agent_id, agent_type, slots_per_agent or max(len(requested), 1))
    agent.requested_time_slots = list(requested)
    agent.allocated_time_slots = list(allocated)
    return agent
