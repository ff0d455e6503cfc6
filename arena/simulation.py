"""
Simulation Engine.

Runs a multi-day simulation with a configured population and collects the
day-level results into pandas DataFrames.
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path

import numpy as np
import pandas as pd
from omegaconf import DictConfig

from agents.factory import create_population
from arena.config import ArenaConfig
from arena.day import DayResult, run_day
from arena.errors import ConfigurationError
from arena.sinks import DaySinks


@dataclass
class SimulationResults:
    """DataFrames produced by one or more simulation runs."""

    day_metrics: pd.DataFrame
    population: pd.DataFrame
    end_of_day_satisfactions: pd.DataFrame
    round_averages: pd.DataFrame

    def save(self, output_dir: Path) -> list[Path]:
        """Write every frame to ``<output_dir>/<frame name>.csv``."""
        output_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for f in fields(self):
            path = output_dir / f"{f.name}.csv"
            getattr(self, f.name).to_csv(path, index=False)
            written.append(path)
        return written


class Simulation:
    """
    Manages the execution of one seeded simulation run.
    """

    def __init__(self, config: DictConfig, seed: int | None = None):
        self.config = config
        self.arena_config = ArenaConfig.from_dictconfig(config)
        self.seed = int(seed if seed is not None else config.experiment.get("seed", 0))
        self.logger = logging.getLogger(__name__)
        self.results: list[DayResult] = []

    def run(self, sinks: DaySinks | None = None) -> SimulationResults:
        """Run every day and return the collected results."""
        experiment = self.config.experiment
        num_days = int(experiment.days)
        population_size = int(self.config.agents.population_size)

        self.arena_config.validate(population_size)

        rng = np.random.default_rng(self.seed)
        population = create_population(
            population_size,
            list(self.arena_config.unique_agent_types),
            self.arena_config.slots_per_agent,
            rng,
        )
        self.logger.info(
            f"Seed {self.seed}: initialized {len(population)} agents of types "
            f"{list(self.arena_config.unique_agent_types)} for {num_days} days"
        )

        self.results = []
        for day in range(1, num_days + 1):
            self.results.append(run_day(day, population, self.arena_config, sinks, rng, self.seed))

        return self.to_frames()

    def to_frames(self) -> SimulationResults:
        """Flatten the stored day results into DataFrames with a seed column."""
        types = self.arena_config.unique_agent_types
        metric_rows = []
        population_rows = []
        satisfaction_rows = []
        round_rows = []

        for result in self.results:
            m = result.metrics
            row = {
                "seed": self.seed,
                "day": m.day,
                "random_baseline": m.random_baseline,
                "optimum_baseline": m.optimum_baseline,
                "trades": result.trades,
                "strategy_changes": len(result.strategy_changes),
            }
            for t in types:
                row[f"type_{t}_average"] = m.type_averages[t]
            for t in types:
                row[f"type_{t}_std"] = m.type_std_devs[t]
            metric_rows.append(row)

            for t in types:
                population_rows.append(
                    {"seed": self.seed, "day": m.day, "agent_type": t, "count": m.population_counts[t]}
                )
            for s in result.end_of_day_satisfactions:
                satisfaction_rows.append(
                    {
                        "seed": self.seed,
                        "day": m.day,
                        "agent_id": s.agent_id,
                        "agent_type": s.agent_type,
                        "satisfaction": s.satisfaction,
                    }
                )
            for r in result.round_averages:
                round_row = {"seed": self.seed, "day": m.day, "exchange": r.exchange}
                for t in types:
                    round_row[f"type_{t}_average"] = r.type_averages[t]
                round_rows.append(round_row)

        return SimulationResults(
            day_metrics=pd.DataFrame(metric_rows),
            population=pd.DataFrame(population_rows),
            end_of_day_satisfactions=pd.DataFrame(
                satisfaction_rows, columns=["seed", "day", "agent_id", "agent_type", "satisfaction"]
            ),
            round_averages=pd.DataFrame(round_rows),
        )


def run_experiment(config: DictConfig, sinks: DaySinks | None = None) -> SimulationResults:
    """
    Run ``experiment.simulation_runs`` simulations with seeds ``seed, seed+1, ...``.

    Returns:
        Results of all runs concatenated
    """
    logger = logging.getLogger(__name__)
    base_seed = int(config.experiment.get("seed", 0))
    runs = int(config.experiment.get("simulation_runs", 1))
    if runs < 1:
        raise ConfigurationError(f"simulation_runs must be >= 1, got {runs}")

    collected = []
    for run in range(runs):
        seed = base_seed + run
        logger.info(f"Starting simulation run {run + 1}/{runs} (seed {seed})")
        collected.append(Simulation(config, seed=seed).run(sinks))

    return SimulationResults(
        day_metrics=pd.concat([c.day_metrics for c in collected], ignore_index=True),
        population=pd.concat([c.population for c in collected], ignore_index=True),
        end_of_day_satisfactions=pd.concat(
            [c.end_of_day_satisfactions for c in collected], ignore_index=True
        ),
        round_averages=pd.concat([c.round_averages for c in collected], ignore_index=True),
    )
