# tests/unit/arena/test_day.py
"""
Tests for the day orchestrator.

These tests verify:
1. Initial allocation respects capacity and requests
2. Baselines and the worked scenarios (two complementary agents, four
   agents competing for two units)
3. Snapshots on days of interest and additional data
4. Configuration errors abort before any agent is mutated
5. Sink failures surface without corrupting the population
"""

from collections import Counter

import numpy as np
import pytest

from agents.base import Agent
from agents.factory import create_population
from agents.strategies import SELFISH, SOCIAL
from arena.config import ArenaConfig
from arena.day import DayOrchestrator, record_day, run_day
from arena.errors import ConfigurationError, SinkWriteError
from arena.sinks import DaySinks, MemorySink, POPULATION_COLUMNS, average_columns


class FailingSink:
    """Sink that refuses every row."""

    columns = POPULATION_COLUMNS

    def append(self, row):
        raise OSError("disk full")


def small_config(**overrides) -> ArenaConfig:
    params = dict(
        exchanges_per_day=5,
        maximum_peak_consumption=2,
        unique_time_slots=6,
        slots_per_agent=2,
        number_of_agents_to_evolve=3,
        unique_agent_types=(SELFISH, SOCIAL),
        days_of_interest=frozenset({1}),
        additional_data=False,
    )
    params.update(overrides)
    return ArenaConfig(**params)


# =============================================================================
# Test: Allocation
# =============================================================================


class TestInitialAllocation:
    """Tests for DayOrchestrator.allocate()."""

    def test_allocation_never_exceeds_request(self, rng):
        config = small_config()
        population = create_population(10, [SELFISH, SOCIAL], 2, rng)
        DayOrchestrator(config, rng).allocate(population)
        for agent in population:
            assert len(agent.allocated_time_slots) <= len(agent.requested_time_slots)
            assert len(agent.allocated_time_slots) <= config.slots_per_agent

    def test_allocation_respects_capacity(self, rng):
        """Demand 20 units against capacity 12: every unit is handed out once."""
        config = small_config()
        population = create_population(10, [SELFISH, SOCIAL], 2, rng)
        pool = DayOrchestrator(config, rng).allocate(population)
        held = Counter(s for a in population for s in a.allocated_time_slots)
        assert sum(held.values()) == 12
        assert all(count <= config.maximum_peak_consumption for count in held.values())
        assert pool.is_empty()

    def test_surplus_capacity_serves_everyone(self, rng):
        config = small_config(maximum_peak_consumption=10)
        population = create_population(6, [SELFISH], 2, rng)
        pool = DayOrchestrator(config, rng).allocate(population)
        assert all(len(a.allocated_time_slots) == 2 for a in population)
        assert len(pool) == pool.capacity - 12


# =============================================================================
# Test: Worked Scenarios
# =============================================================================


class TestScenarios:
    """End-to-end single-day scenarios with known outcomes."""

    def test_two_agents_two_units(self, rng):
        """Both agents get a unit and one exchange reaches the optimum."""
        config = ArenaConfig(
            exchanges_per_day=1,
            maximum_peak_consumption=1,
            unique_time_slots=2,
            slots_per_agent=1,
            number_of_agents_to_evolve=0,
            unique_agent_types=(SELFISH,),
            days_of_interest=frozenset(),
        )
        for s in range(20):
            population = [Agent(1, SELFISH, 1), Agent(2, SELFISH, 1)]
            result = run_day(1, population, config, None, np.random.default_rng(s))
            assert all(len(a.allocated_time_slots) == 1 for a in population)
            assert sorted(a.allocated_time_slots[0] for a in population) == [1, 2]
            assert result.metrics.type_averages[SELFISH] == pytest.approx(
                result.metrics.optimum_baseline
            )

    def test_capacity_binding_scenario(self, rng):
        """Four agents want the only slot, two units exist: 0.5 everywhere."""
        config = ArenaConfig(
            exchanges_per_day=3,
            maximum_peak_consumption=2,
            unique_time_slots=1,
            slots_per_agent=1,
            number_of_agents_to_evolve=0,
            unique_agent_types=(SELFISH,),
            days_of_interest=frozenset(),
        )
        population = [Agent(i, SELFISH, 1) for i in range(1, 5)]
        result = run_day(1, population, config, None, rng)
        assert result.metrics.random_baseline == pytest.approx(0.5)
        assert result.metrics.optimum_baseline == pytest.approx(0.5)
        assert result.metrics.type_averages[SELFISH] == pytest.approx(0.5)
        assert result.trades == 0

    def test_exchanges_never_lower_average(self, rng):
        config = small_config(number_of_agents_to_evolve=0)
        population = create_population(12, [SELFISH, SOCIAL], 2, rng)
        result = DayOrchestrator(config, rng).simulate(1, population)
        counts = result.metrics.population_counts
        end_average = sum(result.metrics.type_averages[t] * counts[t] for t in counts) / 12
        assert end_average >= result.metrics.random_baseline - 1e-12
        assert end_average <= result.metrics.optimum_baseline + 1e-12


# =============================================================================
# Test: Snapshots
# =============================================================================


class TestSnapshots:
    """Tests for days of interest and additional data."""

    def test_day_of_interest_snapshots(self, rng):
        config = small_config()
        population = create_population(8, [SELFISH, SOCIAL], 2, rng)
        result = DayOrchestrator(config, rng).simulate(1, population)
        assert len(result.end_of_day_satisfactions) == 8
        assert [r.exchange for r in result.round_averages] == [1, 2, 3, 4, 5]

    def test_other_days_not_snapshotted(self, rng):
        config = small_config()
        population = create_population(8, [SELFISH, SOCIAL], 2, rng)
        result = DayOrchestrator(config, rng).simulate(2, population)
        assert result.end_of_day_satisfactions == []
        assert result.round_averages == []

    def test_additional_data_records_every_exchange(self, rng):
        config = small_config(additional_data=True)
        population = create_population(8, [SELFISH, SOCIAL], 2, rng)
        result = DayOrchestrator(config, rng).simulate(2, population)
        assert len(result.individual_satisfactions) == 5 * 8

    def test_metrics_recorded_before_learning(self, rng):
        """Population counts describe the day's strategies, not tomorrow's."""
        config = small_config(number_of_agents_to_evolve=50)
        population = create_population(8, [SELFISH, SOCIAL], 2, rng)
        before = Counter(a.agent_type for a in population)
        result = DayOrchestrator(config, rng).simulate(1, population)
        assert result.metrics.population_counts == {SELFISH: before[SELFISH], SOCIAL: before[SOCIAL]}


# =============================================================================
# Test: Errors
# =============================================================================


class TestErrors:
    """Tests for configuration and sink failures."""

    def test_invalid_config_aborts_before_mutation(self, rng):
        population = create_population(6, [SELFISH, SOCIAL], 2, rng)
        order = [a.agent_id for a in population]
        with pytest.raises(ConfigurationError):
            run_day(1, population, small_config(exchanges_per_day=0), None, rng)
        assert [a.agent_id for a in population] == order
        assert all(a.requested_time_slots == [] for a in population)

    def test_unknown_agent_type_in_population(self, rng):
        population = create_population(6, [SELFISH, SOCIAL], 2, rng)
        with pytest.raises(ConfigurationError, match="agent types"):
            run_day(1, population, small_config(unique_agent_types=(SELFISH,)), None, rng)

    def test_population_slots_must_match_config(self, rng):
        population = create_population(4, [SELFISH, SOCIAL], 1, rng)
        with pytest.raises(ConfigurationError, match="slots_per_agent=3"):
            run_day(1, population, small_config(slots_per_agent=3), None, rng)
        assert all(a.requested_time_slots == [] for a in population)

    def test_requests_have_config_length(self, rng):
        config = small_config(slots_per_agent=3)
        population = create_population(4, [SELFISH, SOCIAL], 3, rng)
        DayOrchestrator(config, rng).allocate(population)
        assert all(len(a.requested_time_slots) == 3 for a in population)

    def test_sink_failure_surfaces_and_state_stays_valid(self, rng):
        config = small_config()
        population = create_population(6, [SELFISH, SOCIAL], 2, rng)
        sinks = DaySinks(population=FailingSink())
        with pytest.raises(SinkWriteError) as excinfo:
            run_day(1, population, config, sinks, rng)
        assert isinstance(excinfo.value.__cause__, OSError)
        for agent in population:
            assert len(agent.requested_time_slots) == 2
            assert len(agent.allocated_time_slots) <= 2


# =============================================================================
# Test: Recording
# =============================================================================


class TestRecordDay:
    """Tests for record_day()."""

    def test_rows_without_additional_data(self, rng):
        config = small_config()
        population = create_population(8, [SELFISH, SOCIAL], 2, rng)
        sinks = DaySinks.in_memory(config.unique_agent_types)
        run_day(1, population, config, sinks, rng, seed=42)

        assert len(sinks.average) == 0
        assert len(sinks.individual) == 0
        assert len(sinks.distribution) == 8
        assert len(sinks.round_average) == 5
        assert sinks.population.to_dataframe()["count"].sum() == 8

    def test_rows_with_additional_data(self, rng):
        config = small_config(additional_data=True)
        population = create_population(8, [SELFISH, SOCIAL], 2, rng)
        sinks = DaySinks.in_memory(config.unique_agent_types)
        result = run_day(3, population, config, sinks, rng, seed=42)

        average = sinks.average.to_dataframe()
        assert list(average.columns) == list(average_columns(config.unique_agent_types))
        assert average.loc[0, "seed"] == 42
        assert average.loc[0, "day"] == 3
        assert average.loc[0, "random_baseline"] == result.metrics.random_baseline
        assert len(sinks.individual) == 5 * 8
        assert len(sinks.distribution) == 0

    def test_record_day_skips_missing_sinks(self, rng):
        config = small_config(additional_data=True)
        population = create_population(4, [SELFISH, SOCIAL], 2, rng)
        result = DayOrchestrator(config, rng).simulate(1, population)
        sinks = DaySinks(population=MemorySink(POPULATION_COLUMNS))
        record_day(result, sinks, seed=0, config=config)
        assert len(sinks.population) == 2


# =============================================================================
# Test: Determinism
# =============================================================================


class TestDeterminism:
    """Same seed, same configuration, same days."""

    def test_identical_metrics_over_days(self):
        config = small_config()

        def run(seed):
            rng = np.random.default_rng(seed)
            population = create_population(10, [SELFISH, SOCIAL], 2, rng)
            return [run_day(d, population, config, None, rng).metrics for d in range(1, 6)]

        assert run(123) == run(123)
