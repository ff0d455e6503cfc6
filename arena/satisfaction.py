"""
Satisfaction metrics for the resource exchange arena.

This module implements the welfare measures used to evaluate a day:
- Agent satisfaction (fraction of requested slots actually held)
- Average and standard deviation of satisfaction, optionally per agent type
- Optimum satisfaction (best average any redistribution of the allocated
  units could reach)

All functions are pure: they read ``requested_time_slots``,
``allocated_time_slots`` and ``agent_type`` from the agents and never mutate
them. Requests and allocations are compared as multisets, so an agent that
requests slot 3 twice needs two units of slot 3 to be fully satisfied.
"""

from collections import Counter
from typing import Any, Iterable, Sequence

import numpy as np

# Satisfaction of an agent that requested nothing
NEUTRAL_SATISFACTION = 1.0

# Returned by averages over an empty set of agents
EMPTY_AVERAGE = 0.0


def satisfied_slots(requested: Sequence[int], allocated: Sequence[int]) -> int:
    """
    Count requested slots covered by the allocation, as multisets.

    Args:
        requested: Requested time slot labels
        allocated: Allocated time slot labels

    Returns:
        Size of the multiset intersection
    """
    return sum((Counter(requested) & Counter(allocated)).values())


def slot_satisfaction(requested: Sequence[int], allocated: Sequence[int]) -> float:
    """Fraction of ``requested`` covered by ``allocated``."""
    if not requested:
        return NEUTRAL_SATISFACTION
    return satisfied_slots(requested, allocated) / len(requested)


def agent_satisfaction(agent: Any) -> float:
    """
    Satisfaction of a single agent with its current allocation.

    Returns:
        Value in [0, 1]; 1.0 when the agent requested nothing
    """
    return slot_satisfaction(agent.requested_time_slots, agent.allocated_time_slots)


def _of_type(agents: Iterable[Any], agent_type: int | None) -> list[Any]:
    if agent_type is None:
        return list(agents)
    return [a for a in agents if a.agent_type == agent_type]


def average_satisfaction(agents: Iterable[Any], agent_type: int | None = None) -> float:
    """
    Mean satisfaction over the agents, optionally restricted to one type.

    Args:
        agents: Population
        agent_type: Only average agents of this type when given

    Returns:
        Arithmetic mean, or 0.0 when no agent matches
    """
    selected = _of_type(agents, agent_type)
    if not selected:
        return EMPTY_AVERAGE
    return float(np.mean([agent_satisfaction(a) for a in selected]))


def satisfaction_std(agents: Iterable[Any], agent_type: int | None = None) -> float:
    """
    Population standard deviation of satisfaction (ddof=0).

    Returns:
        Standard deviation, or 0.0 when no agent matches
    """
    selected = _of_type(agents, agent_type)
    if not selected:
        return EMPTY_AVERAGE
    return float(np.std([agent_satisfaction(a) for a in selected], ddof=0))


def optimum_satisfaction(agents: Iterable[Any]) -> float:
    """
    Best average satisfaction reachable by redistributing the allocated units.

    Pools every agent's requests and every allocated unit, ignoring who holds
    what, and counts how many requests the pooled units can cover. Capacity is
    therefore the binding constraint whatever the current assignment is.
    With every agent requesting the same number of slots this is an upper
    bound on ``average_satisfaction``.

    Returns:
        Fraction of all requests that can be covered; 1.0 when nothing was requested
    """
    all_requested: list[int] = []
    all_allocated: list[int] = []
    for agent in agents:
        all_requested.extend(agent.requested_time_slots)
        all_allocated.extend(agent.allocated_time_slots)

    if not all_requested:
        return NEUTRAL_SATISFACTION
    return satisfied_slots(all_requested, all_allocated) / len(all_requested)


def type_averages(agents: Sequence[Any], agent_types: Iterable[int]) -> dict[int, float]:
    """Average satisfaction per agent type, keyed in ``agent_types`` order."""
    return {t: average_satisfaction(agents, t) for t in agent_types}


def type_std_devs(agents: Sequence[Any], agent_types: Iterable[int]) -> dict[int, float]:
    """Satisfaction standard deviation per agent type."""
    return {t: satisfaction_std(agents, t) for t in agent_types}


def population_counts(agents: Iterable[Any], agent_types: Iterable[int]) -> dict[int, int]:
    """Number of agents of each type."""
    counts = Counter(a.agent_type for a in agents)
    return {t: counts.get(t, 0) for t in agent_types}
