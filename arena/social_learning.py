"""
End-of-day social learning.

For each of the ``number_of_agents_to_evolve`` learning opportunities, a
learner is sampled uniformly from the population and observes a different,
uniformly sampled role model. If the role model ended the day strictly more
satisfied, the learner copies its strategy with a probability equal to the
normalized satisfaction gap. Opportunities are independent: the same agent
can be sampled several times and the last adoption wins.

Satisfactions are compared in whole slots (satisfaction * slots_per_agent,
rounded) so that two agents holding the same number of requested slots are
treated as equal regardless of floating point noise.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from agents.base import Agent

logger = logging.getLogger(__name__)

# Satisfaction lies in [0, 1]
MAX_SATISFACTION_GAP = 1.0


@dataclass(frozen=True)
class StrategyChange:
    """A learner adopting a role model's strategy."""

    agent_id: int
    observed_agent_id: int
    old_type: int
    new_type: int
    satisfaction_gap: float


def imitation_probability(learner_satisfaction: float, observed_satisfaction: float) -> float:
    """
    Probability that the learner copies the observed agent's strategy.

    Zero when the observed agent did not do better; otherwise the gap scaled
    by the largest possible gap, clipped to [0, 1].
    """
    gap = observed_satisfaction - learner_satisfaction
    if gap <= 0:
        return 0.0
    return min(gap / MAX_SATISFACTION_GAP, 1.0)


class SocialLearningStep:
    """
    The evolutionary update applied to the population at day end.

    Attributes:
        rng: Generator for sampling agents and imitation draws
        slots_per_agent: Used to compare satisfactions in whole slots
        number_of_agents_to_evolve: Learning opportunities per day
    """

    def __init__(
        self,
        rng: np.random.Generator,
        slots_per_agent: int,
        number_of_agents_to_evolve: int,
    ) -> None:
        self.rng = rng
        self.slots_per_agent = slots_per_agent
        self.number_of_agents_to_evolve = number_of_agents_to_evolve

    def _sample_pair(self, population_size: int) -> tuple[int, int]:
        """Uniform learner index and uniform distinct observed index."""
        learner = int(self.rng.integers(population_size))
        observed = int(self.rng.integers(population_size - 1))
        if observed >= learner:
            observed += 1
        return learner, observed

    def _outperforms(self, observed_satisfaction: float, learner_satisfaction: float) -> bool:
        return round(observed_satisfaction * self.slots_per_agent) > round(
            learner_satisfaction * self.slots_per_agent
        )

    def run(self, agents: Sequence["Agent"]) -> list[StrategyChange]:
        """
        Apply all learning opportunities to the population.

        Args:
            agents: Population; learners' agent_type is mutated in place

        Returns:
            Every adoption, in the order it happened
        """
        changes: list[StrategyChange] = []
        if self.number_of_agents_to_evolve <= 0 or len(agents) < 2:
            return changes

        for _ in range(self.number_of_agents_to_evolve):
            learner_idx, observed_idx = self._sample_pair(len(agents))
            learner = agents[learner_idx]
            observed = agents[observed_idx]

            learner_satisfaction = learner.satisfaction()
            observed_satisfaction = observed.satisfaction()
            if not self._outperforms(observed_satisfaction, learner_satisfaction):
                continue

            probability = imitation_probability(learner_satisfaction, observed_satisfaction)
            if self.rng.random() < probability:
                change = StrategyChange(
                    agent_id=learner.agent_id,
                    observed_agent_id=observed.agent_id,
                    old_type=learner.agent_type,
                    new_type=observed.agent_type,
                    satisfaction_gap=observed_satisfaction - learner_satisfaction,
                )
                learner.adopt_strategy(observed.agent_type)
                changes.append(change)
                logger.debug(
                    f"Agent {change.agent_id} copied type {change.new_type} from agent "
                    f"{change.observed_agent_id} (gap {change.satisfaction_gap:.3f})"
                )

        return changes
