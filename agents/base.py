"""
Arena agent.

An Agent holds a stable identity, a strategy tag, and the day's requested
and allocated time slots. Behaviour that varies by strategy (what to request,
which swaps to accept) is delegated to the strategy table in
``agents.strategies``; the Agent itself only stores state and enforces the
allocation invariants.

Lifecycle:
- Created once per simulation run, persists across days
- Each day: request_time_slots() -> receive_allocation() -> swaps
- agent_type changes only through adopt_strategy() at day end
"""

from collections import defaultdict

import numpy as np

from agents.strategies import get_strategy
from arena.satisfaction import slot_satisfaction


class Agent:
    """
    A participant in the resource exchange arena.

    Attributes:
        agent_id: Unique identifier (1-indexed), stable across days
        slots_per_agent: Number of time slots requested each day
        requested_time_slots: Slots requested today
        allocated_time_slots: Slots currently held
        favours_given: Neutral swaps this agent accepted to help each partner
        favours_received: Neutral swaps each partner accepted to help this agent
    """

    def __init__(self, agent_id: int, agent_type: int, slots_per_agent: int) -> None:
        """
        Initialize an agent.

        Args:
            agent_id: Unique identifier (must be >= 1)
            agent_type: Strategy tag, must exist in the strategy table
            slots_per_agent: Number of slots requested each day (must be >= 1)

        Raises:
            ValueError: If agent_id < 1, slots_per_agent < 1 or the type is unknown
        """
        if agent_id < 1:
            raise ValueError(f"agent_id must be >= 1, got {agent_id}")
        if slots_per_agent < 1:
            raise ValueError(f"slots_per_agent must be >= 1, got {slots_per_agent}")
        get_strategy(agent_type)

        self.agent_id = agent_id
        self._agent_type = agent_type
        self.slots_per_agent = slots_per_agent
        self.requested_time_slots: list[int] = []
        self.allocated_time_slots: list[int] = []
        self.favours_given: defaultdict[int, int] = defaultdict(int)
        self.favours_received: defaultdict[int, int] = defaultdict(int)

    @property
    def agent_type(self) -> int:
        return self._agent_type

    # =========================================================================
    # DAILY CYCLE
    # =========================================================================

    def request_time_slots(self, unique_time_slots: int, rng: np.random.Generator) -> list[int]:
        """
        Generate today's request from the agent's strategy.

        Clears yesterday's allocation, since it no longer matches the request.

        Returns:
            Copy of the requested time slots
        """
        strategy = get_strategy(self._agent_type)
        self.requested_time_slots = strategy.request(self.slots_per_agent, unique_time_slots, rng)
        self.allocated_time_slots = []
        return list(self.requested_time_slots)

    def receive_allocation(self, allocated_time_slots: list[int]) -> None:
        """
        Replace the current allocation with the initial allocation of the day.

        Raises:
            ValueError: If the allocation exceeds the request or slots_per_agent
        """
        if len(allocated_time_slots) > self.slots_per_agent:
            raise ValueError(
                f"Agent {self.agent_id} cannot hold {len(allocated_time_slots)} slots "
                f"(slots_per_agent={self.slots_per_agent})"
            )
        if len(allocated_time_slots) > len(self.requested_time_slots):
            raise ValueError(
                f"Agent {self.agent_id} allocated {len(allocated_time_slots)} slots "
                f"but requested {len(self.requested_time_slots)}"
            )
        self.allocated_time_slots = list(allocated_time_slots)

    def satisfaction(self) -> float:
        """Fraction of requested slots held."""
        return slot_satisfaction(self.requested_time_slots, self.allocated_time_slots)

    # =========================================================================
    # TRADING
    # =========================================================================

    def holds(self, time_slot: int) -> bool:
        return time_slot in self.allocated_time_slots

    def accepts_trade(self, partner: "Agent", gain: float) -> bool:
        """Ask the strategy whether a swap with ``partner`` worth ``gain`` is acceptable."""
        return get_strategy(self._agent_type).accepts(self, partner, gain)

    def favour_balance(self, partner: "Agent") -> int:
        """Favours received from ``partner`` minus favours given to it."""
        pid = partner.agent_id
        return self.favours_received[pid] - self.favours_given[pid]

    def record_trade(self, partner: "Agent", own_gain: float, partner_gain: float) -> None:
        """Update the favour ledger after a realized swap."""
        if own_gain == 0 and partner_gain > 0:
            self.favours_given[partner.agent_id] += 1
        elif partner_gain == 0 and own_gain > 0:
            self.favours_received[partner.agent_id] += 1

    # =========================================================================
    # SOCIAL LEARNING
    # =========================================================================

    def adopt_strategy(self, agent_type: int) -> None:
        """
        Switch to another strategy; takes effect from the next request.

        Raises:
            ValueError: If the type is unknown
        """
        get_strategy(agent_type)
        self._agent_type = agent_type

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(id={self.agent_id}, type={self._agent_type}, "
            f"requested={self.requested_time_slots}, allocated={self.allocated_time_slots})"
        )
