"""
Pairwise exchange round.

During one exchange round every agent gets one chance to trade a single time
slot with a partner:

1. PAIRING: The population is shuffled and neighbours are paired. With an
   odd population the last agent sits the round out.
2. NEGOTIATION: For each pair, every (slot held by A, slot held by B) with
   different labels is a candidate swap. A candidate is acceptable when
   neither agent loses satisfaction, at least one gains, and both agents'
   strategies accept their own gain.
3. SELECTION: Highest combined gain wins, then highest minimum gain, then a
   uniform random pick among the remaining ties.
4. SETTLEMENT: The chosen swap moves one unit each way. Units are never
   created or destroyed, so per-label totals are conserved.

Gains are exact fractions (slots gained / slots requested) so that ties are
detected without floating point noise.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from fractions import Fraction
from typing import TYPE_CHECKING, Sequence

import numpy as np

from arena.errors import InvalidTradeError

if TYPE_CHECKING:
    from agents.base import Agent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapCandidate:
    """A single-unit swap between two agents and what each gains from it."""

    slot_from_a: int
    slot_from_b: int
    gain_a: Fraction
    gain_b: Fraction

    @property
    def combined_gain(self) -> Fraction:
        return self.gain_a + self.gain_b

    @property
    def minimum_gain(self) -> Fraction:
        return min(self.gain_a, self.gain_b)


@dataclass(frozen=True)
class Trade:
    """A realized swap."""

    exchange: int
    agent_a: int
    agent_b: int
    slot_from_a: int
    slot_from_b: int
    gain_a: float
    gain_b: float


@dataclass(frozen=True)
class SlotNeeds:
    """
    An agent's unmet requests and surplus holdings, for pricing swaps.

    Giving away a unit costs a satisfied slot unless it is surplus; receiving
    a unit adds one only if that label is still unmet. Built once per pair.
    """

    requested: int
    unmet: Counter
    surplus: Counter

    @classmethod
    def of(cls, agent: "Agent") -> "SlotNeeds":
        requested = Counter(agent.requested_time_slots)
        held = Counter(agent.allocated_time_slots)
        return cls(len(agent.requested_time_slots), requested - held, held - requested)

    def gain(self, give: int, receive: int) -> Fraction:
        """Exact satisfaction delta of giving one ``give`` unit for one ``receive`` unit."""
        if not self.requested or give == receive:
            return Fraction(0)
        delta = int(self.unmet[receive] > 0) - int(self.surplus[give] == 0)
        return Fraction(delta, self.requested)


def swap_gain(agent: "Agent", give: int, receive: int) -> Fraction:
    """
    Change in an agent's satisfaction if it gives one unit of ``give`` for ``receive``.

    Returns:
        Exact satisfaction delta; zero for an agent that requested nothing
    """
    return SlotNeeds.of(agent).gain(give, receive)


def apply_swap(agent_a: "Agent", agent_b: "Agent", slot_from_a: int, slot_from_b: int) -> None:
    """
    Move one unit of ``slot_from_a`` to B and one unit of ``slot_from_b`` to A.

    Raises:
        InvalidTradeError: If the swap would break ownership or conservation
    """
    if agent_a is agent_b:
        raise InvalidTradeError(f"Agent {agent_a.agent_id} cannot trade with itself")
    if slot_from_a == slot_from_b:
        raise InvalidTradeError(
            f"Swapping slot {slot_from_a} for itself between agents "
            f"{agent_a.agent_id} and {agent_b.agent_id}"
        )
    if not agent_a.holds(slot_from_a):
        raise InvalidTradeError(f"Agent {agent_a.agent_id} does not hold slot {slot_from_a}")
    if not agent_b.holds(slot_from_b):
        raise InvalidTradeError(f"Agent {agent_b.agent_id} does not hold slot {slot_from_b}")

    size_a = len(agent_a.allocated_time_slots)
    size_b = len(agent_b.allocated_time_slots)

    agent_a.allocated_time_slots.remove(slot_from_a)
    agent_a.allocated_time_slots.append(slot_from_b)
    agent_b.allocated_time_slots.remove(slot_from_b)
    agent_b.allocated_time_slots.append(slot_from_a)

    if len(agent_a.allocated_time_slots) != size_a or len(agent_b.allocated_time_slots) != size_b:
        raise InvalidTradeError(
            f"Swap between agents {agent_a.agent_id} and {agent_b.agent_id} changed holdings size"
        )


class ExchangeRound:
    """
    One round of pairwise trading across the whole population.

    Attributes:
        rng: Generator for pairing and tie-breaking
        exchange: Index of this round within the day (1-indexed)
        trades: Swaps realized by the last call to run()
    """

    def __init__(self, rng: np.random.Generator, exchange: int = 1) -> None:
        self.rng = rng
        self.exchange = exchange
        self.trades: list[Trade] = []

    def pair(self, agents: Sequence["Agent"]) -> list[tuple["Agent", "Agent"]]:
        """Shuffle a copy of the population and pair neighbours."""
        order = list(agents)
        self.rng.shuffle(order)
        return list(zip(order[0::2], order[1::2]))

    def candidate_swaps(self, agent_a: "Agent", agent_b: "Agent") -> list[SwapCandidate]:
        """All distinct single-unit swaps between the pair, priced for both sides."""
        needs_a = SlotNeeds.of(agent_a)
        needs_b = SlotNeeds.of(agent_b)
        candidates = []
        for slot_from_a in sorted(set(agent_a.allocated_time_slots)):
            for slot_from_b in sorted(set(agent_b.allocated_time_slots)):
                if slot_from_a == slot_from_b:
                    continue
                candidates.append(
                    SwapCandidate(
                        slot_from_a=slot_from_a,
                        slot_from_b=slot_from_b,
                        gain_a=needs_a.gain(slot_from_a, slot_from_b),
                        gain_b=needs_b.gain(slot_from_b, slot_from_a),
                    )
                )
        return candidates

    def negotiate(self, agent_a: "Agent", agent_b: "Agent") -> SwapCandidate | None:
        """
        Pick the swap the pair agrees on, if any.

        Returns:
            The selected candidate, or None when no acceptable swap exists
        """
        acceptable = [
            c
            for c in self.candidate_swaps(agent_a, agent_b)
            if c.gain_a >= 0
            and c.gain_b >= 0
            and c.combined_gain > 0
            and agent_a.accepts_trade(agent_b, c.gain_a)
            and agent_b.accepts_trade(agent_a, c.gain_b)
        ]
        if not acceptable:
            return None

        best_key = max((c.combined_gain, c.minimum_gain) for c in acceptable)
        best = [c for c in acceptable if (c.combined_gain, c.minimum_gain) == best_key]
        if len(best) == 1:
            return best[0]
        return best[int(self.rng.integers(len(best)))]

    def run(self, agents: Sequence["Agent"]) -> list[Trade]:
        """
        Let every pair attempt one trade.

        Args:
            agents: Population; allocations are mutated in place

        Returns:
            Trades realized this round
        """
        self.trades = []
        for agent_a, agent_b in self.pair(agents):
            choice = self.negotiate(agent_a, agent_b)
            if choice is None:
                continue

            apply_swap(agent_a, agent_b, choice.slot_from_a, choice.slot_from_b)
            agent_a.record_trade(agent_b, choice.gain_a, choice.gain_b)
            agent_b.record_trade(agent_a, choice.gain_b, choice.gain_a)

            trade = Trade(
                exchange=self.exchange,
                agent_a=agent_a.agent_id,
                agent_b=agent_b.agent_id,
                slot_from_a=choice.slot_from_a,
                slot_from_b=choice.slot_from_b,
                gain_a=float(choice.gain_a),
                gain_b=float(choice.gain_b),
            )
            self.trades.append(trade)
            logger.debug(
                f"Exchange {self.exchange}: agent {trade.agent_a} gave slot {trade.slot_from_a} "
                f"to agent {trade.agent_b} for slot {trade.slot_from_b} "
                f"(gains {trade.gain_a:.3f}/{trade.gain_b:.3f})"
            )

        return self.trades
