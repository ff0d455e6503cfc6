"""
Day orchestrator.

Runs one simulated day over a persistent population. The states are strictly
ordered and never revisited:

1. INITIALIZE POOL: Fresh AllocationPool with full capacity
2. ALLOCATE: Shuffle the population; each agent requests slots and receives
   a random initial allocation drawn from the pool
3. BASELINE: Random-allocation and optimum average satisfaction
4. EXCHANGE: ``exchanges_per_day`` sequential ExchangeRounds
5. END OF DAY: Per-type averages, deviations, population counts, and the
   per-agent snapshot on days of interest
6. SOCIAL LEARNING: Strategy imitation that seeds the next day

Simulation and output are separate: ``DayOrchestrator.simulate`` returns a
DayResult and performs no I/O, ``record_day`` appends that result to the
metrics sinks. Everything that persists lives in the Agent population, so a
failing sink cannot leave the simulation in an inconsistent state.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from arena.config import ArenaConfig
from arena.errors import ConfigurationError
from arena.exchange import ExchangeRound
from arena.pool import AllocationPool
from arena.satisfaction import (
    average_satisfaction,
    optimum_satisfaction,
    population_counts,
    type_averages,
    type_std_devs,
)
from arena.sinks import DaySinks, append_row
from arena.social_learning import SocialLearningStep, StrategyChange

if TYPE_CHECKING:
    from agents.base import Agent


@dataclass(frozen=True)
class DayMetrics:
    """Aggregate metrics produced once per day."""

    day: int
    random_baseline: float
    optimum_baseline: float
    type_averages: dict[int, float]
    type_std_devs: dict[int, float]
    population_counts: dict[int, int]


@dataclass(frozen=True)
class IndividualSatisfaction:
    """One agent's satisfaction after an exchange round (or at day end)."""

    exchange: int
    agent_id: int
    agent_type: int
    satisfaction: float


@dataclass(frozen=True)
class RoundAverage:
    """Per-type average satisfaction after an exchange round."""

    exchange: int
    type_averages: dict[int, float]


@dataclass
class DayResult:
    """Everything a day produced, ready to be recorded."""

    metrics: DayMetrics
    round_averages: list[RoundAverage] = field(default_factory=list)
    individual_satisfactions: list[IndividualSatisfaction] = field(default_factory=list)
    end_of_day_satisfactions: list[IndividualSatisfaction] = field(default_factory=list)
    trades: int = 0
    strategy_changes: list[StrategyChange] = field(default_factory=list)

    @property
    def day(self) -> int:
        return self.metrics.day


class DayOrchestrator:
    """
    Sequences one day of allocation, trading and learning.

    Attributes:
        config: Day parameters
        rng: Generator threaded through every random step of the day
    """

    def __init__(self, config: ArenaConfig, rng: np.random.Generator) -> None:
        self.config = config
        self.rng = rng
        self.logger = logging.getLogger(__name__)

    def check(self, population: list["Agent"]) -> None:
        """
        Validate the configuration against the population.

        Raises:
            ConfigurationError: Before any agent has been touched
        """
        self.config.validate(len(population))
        unknown = {a.agent_type for a in population} - set(self.config.unique_agent_types)
        if unknown:
            raise ConfigurationError(
                f"Population contains agent types {sorted(unknown)} missing from "
                f"unique_agent_types {list(self.config.unique_agent_types)}"
            )
        mismatched = sorted(
            a.agent_id for a in population if a.slots_per_agent != self.config.slots_per_agent
        )
        if mismatched:
            raise ConfigurationError(
                f"Agents {mismatched} request a different number of slots than "
                f"slots_per_agent={self.config.slots_per_agent}"
            )

    def allocate(self, population: list["Agent"]) -> AllocationPool:
        """Shuffle the population and give every agent its initial allocation."""
        pool = AllocationPool(
            self.config.unique_time_slots,
            self.config.maximum_peak_consumption,
            self.rng,
        )
        self.rng.shuffle(population)
        for agent in population:
            requested = agent.request_time_slots(self.config.unique_time_slots, self.rng)
            agent.receive_allocation(pool.allocate(requested))
        return pool

    def _snapshot(self, population: list["Agent"], exchange: int) -> list[IndividualSatisfaction]:
        return [
            IndividualSatisfaction(
                exchange=exchange,
                agent_id=a.agent_id,
                agent_type=a.agent_type,
                satisfaction=a.satisfaction(),
            )
            for a in population
        ]

    def simulate(self, day: int, population: list["Agent"]) -> DayResult:
        """
        Run one full day.

        Args:
            day: Day number (1-indexed)
            population: Agents; reordered and mutated in place

        Returns:
            The day's metrics and snapshots

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config = self.config
        self.check(population)

        pool = self.allocate(population)
        random_baseline = average_satisfaction(population)
        optimum_baseline = optimum_satisfaction(population)
        self.logger.debug(
            f"Day {day}: allocated {pool.capacity - len(pool)}/{pool.capacity} units, "
            f"random={random_baseline:.3f} optimum={optimum_baseline:.3f}"
        )

        of_interest = config.is_day_of_interest(day)
        round_averages: list[RoundAverage] = []
        individual: list[IndividualSatisfaction] = []
        trades = 0

        for exchange in range(1, config.exchanges_per_day + 1):
            exchange_round = ExchangeRound(self.rng, exchange)
            trades += len(exchange_round.run(population))

            if of_interest:
                round_averages.append(
                    RoundAverage(exchange, type_averages(population, config.unique_agent_types))
                )
            if config.additional_data:
                individual.extend(self._snapshot(population, exchange))

        metrics = DayMetrics(
            day=day,
            random_baseline=random_baseline,
            optimum_baseline=optimum_baseline,
            type_averages=type_averages(population, config.unique_agent_types),
            type_std_devs=type_std_devs(population, config.unique_agent_types),
            population_counts=population_counts(population, config.unique_agent_types),
        )
        end_of_day = self._snapshot(population, config.exchanges_per_day) if of_interest else []

        learning = SocialLearningStep(
            self.rng,
            config.slots_per_agent,
            config.number_of_agents_to_evolve,
        )
        changes = learning.run(population)

        self.logger.info(
            f"Day {day}: {trades} trades, "
            + ", ".join(f"type {t} avg {v:.3f}" for t, v in metrics.type_averages.items())
            + f", {len(changes)} strategy adoptions"
        )

        return DayResult(
            metrics=metrics,
            round_averages=round_averages,
            individual_satisfactions=individual,
            end_of_day_satisfactions=end_of_day,
            trades=trades,
            strategy_changes=changes,
        )


def record_day(result: DayResult, sinks: DaySinks, seed: int, config: ArenaConfig) -> None:
    """
    Append a day's rows to the sinks.

    Average and individual rows are written only with ``additional_data``;
    distribution and round-average rows only on days of interest (the
    result is empty otherwise); population rows every day.

    Raises:
        SinkWriteError: On the first failing append
    """
    metrics = result.metrics
    types = config.unique_agent_types

    if config.additional_data and sinks.individual is not None:
        for s in result.individual_satisfactions:
            append_row(
                sinks.individual,
                {
                    "seed": seed,
                    "day": metrics.day,
                    "exchange": s.exchange,
                    "agent_id": s.agent_id,
                    "agent_type": s.agent_type,
                    "satisfaction": s.satisfaction,
                },
            )

    if config.additional_data and sinks.average is not None:
        row: dict[str, object] = {
            "seed": seed,
            "day": metrics.day,
            "random_baseline": metrics.random_baseline,
            "optimum_baseline": metrics.optimum_baseline,
        }
        for t in types:
            row[f"type_{t}_average"] = metrics.type_averages[t]
        for t in types:
            row[f"type_{t}_std"] = metrics.type_std_devs[t]
        append_row(sinks.average, row)

    if sinks.round_average is not None:
        for r in result.round_averages:
            row = {"day": metrics.day, "exchange": r.exchange}
            for t in types:
                row[f"type_{t}_average"] = r.type_averages[t]
            append_row(sinks.round_average, row)

    if sinks.distribution is not None:
        for s in result.end_of_day_satisfactions:
            append_row(
                sinks.distribution,
                {"day": metrics.day, "agent_type": s.agent_type, "satisfaction": s.satisfaction},
            )

    if sinks.population is not None:
        for t in types:
            append_row(
                sinks.population,
                {"day": metrics.day, "agent_type": t, "count": metrics.population_counts[t]},
            )


def run_day(
    day: int,
    population: list["Agent"],
    config: ArenaConfig,
    sinks: DaySinks | None,
    rng: np.random.Generator,
    seed: int = 0,
) -> DayResult:
    """
    Simulate one day and record it.

    Args:
        day: Day number (1-indexed)
        population: Agents; mutated in place and carried to the next day
        config: Day parameters
        sinks: Where to append rows, or None to skip recording
        rng: Generator for every random step
        seed: Written to the seed column of seeded rows

    Returns:
        The day's result

    Raises:
        ConfigurationError: Before any agent is mutated
        SinkWriteError: After the day has been fully simulated
    """
    result = DayOrchestrator(config, rng).simulate(day, population)
    if sinks is not None:
        record_day(result, sinks, seed, config)
    return result
