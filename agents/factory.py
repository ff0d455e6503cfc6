"""
Agent Factory.
"""

import numpy as np

from agents.base import Agent


def create_agent(agent_id: int, agent_type: int, slots_per_agent: int) -> Agent:
    """
    Agent instance
    """
    return Agent(agent_id, agent_type, slots_per_agent)


def create_population(
    population_size: int,
    agent_types: list[int],
    slots_per_agent: int,
    rng: np.random.Generator,
) -> list[Agent]:
    """
    Create a population split as evenly as possible across agent types.

    The first ``population_size % len(agent_types)`` types get one extra
    agent. Identities are assigned 1..population_size before shuffling, so
    they are stable for the whole run.

    Args:
        population_size: Total number of agents
        agent_types: Type tags present when the simulation begins
        slots_per_agent: Slots each agent requests per day
        rng: Generator used to shuffle the initial order

    Returns:
        Shuffled list of agents

    Raises:
        ValueError: If population_size < 1 or agent_types is empty
    """
    if population_size < 1:
        raise ValueError(f"population_size must be >= 1, got {population_size}")
    if not agent_types:
        raise ValueError("agent_types must not be empty")

    agents_per_type = population_size // len(agent_types)
    remainder = population_size % len(agent_types)

    population = []
    agent_id = 1
    for i, agent_type in enumerate(agent_types):
        count = agents_per_type + (1 if i < remainder else 0)
        for _ in range(count):
            population.append(create_agent(agent_id, agent_type, slots_per_agent))
            agent_id += 1

    rng.shuffle(population)
    return population
