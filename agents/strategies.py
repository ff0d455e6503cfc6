"""
Strategy table for arena agents.

An agent's behaviour is looked up by its ``agent_type`` tag rather than
encoded in a class hierarchy, so social learning can switch an agent's
strategy by changing a single integer. Adding a strategy means adding an
entry to ``STRATEGIES``.

Each strategy supplies two rules:
1. REQUEST: which time slots the agent asks for at the start of a day
2. ACCEPT: whether the agent agrees to a proposed single-slot swap, given
   its own satisfaction gain and the partner it would trade with

Strategies never see swaps that lower their own satisfaction; the exchange
round filters those out before asking.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import numpy as np

if TYPE_CHECKING:
    from agents.base import Agent

SELFISH = 1
SOCIAL = 2


def random_request(
    slots_per_agent: int,
    unique_time_slots: int,
    rng: np.random.Generator,
) -> list[int]:
    """
    Request ``slots_per_agent`` labels uniformly from ``1..unique_time_slots``.

    Labels may repeat; a repeated label asks for more than one unit of it.
    """
    return [int(slot) for slot in rng.integers(1, unique_time_slots + 1, size=slots_per_agent)]


def selfish_accepts(agent: "Agent", partner: "Agent", gain: float) -> bool:
    """Selfish agents only trade when they strictly gain."""
    return gain > 0


def social_accepts(agent: "Agent", partner: "Agent", gain: float) -> bool:
    """
    Social agents trade when they gain, and do neutral favours.

    A neutral swap (zero own gain) is accepted unless the partner already
    owes this agent a favour, i.e. it has received more favours from this
    agent than it has returned.
    """
    if gain > 0:
        return True
    if gain < 0:
        return False
    return agent.favour_balance(partner) >= 0


@dataclass(frozen=True)
class Strategy:
    """A row of the strategy table."""

    name: str
    request: Callable[[int, int, np.random.Generator], list[int]]
    accepts: Callable[["Agent", "Agent", float], bool]


STRATEGIES: dict[int, Strategy] = {
    SELFISH: Strategy("selfish", random_request, selfish_accepts),
    SOCIAL: Strategy("social", random_request, social_accepts),
}


def get_strategy(agent_type: int) -> Strategy:
    """
    Look up a strategy by type tag.

    Raises:
        ValueError: If the tag has no entry in STRATEGIES
    """
    try:
        return STRATEGIES[agent_type]
    except KeyError:
        raise ValueError(
            f"Unknown agent type: {agent_type}. Known types: {sorted(STRATEGIES)}"
        ) from None


def strategy_name(agent_type: int) -> str:
    return get_strategy(agent_type).name
