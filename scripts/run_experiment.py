"""
Run Experiment Script.

Usage:
    python scripts/run_experiment.py
    python scripts/run_experiment.py experiment.days=100 arena.additional_data=true
"""

import logging
import os
from pathlib import Path

import hydra
from omegaconf import DictConfig

from arena.simulation import run_experiment
from arena.sinks import DaySinks


@hydra.main(version_base=None, config_path="../conf", config_name="config")
def main(cfg: DictConfig):
    # Configure logging
    log_level = getattr(logging, cfg.experiment.log_level.upper())

    # Force root logger
    logging.getLogger().setLevel(log_level)

    # Force specific loggers
    logging.getLogger("arena").setLevel(log_level)
    logging.getLogger("agents").setLevel(log_level)

    # Add handler if none exists (Hydra might capture, but we want stdout)
    if not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(asctime)s][%(name)s][%(levelname)s] - %(message)s'))
        logging.getLogger().addHandler(handler)

    logging.info(f"Running experiment: {cfg.experiment.name}")

    output_dir = cfg.experiment.output_dir
    os.makedirs(output_dir, exist_ok=True)

    with DaySinks.to_csv(Path(output_dir), cfg.agents.agent_types) as sinks:
        results = run_experiment(cfg, sinks)

    # Seeded frames go under frames/, apart from the per-day sink files
    written = results.save(Path(output_dir) / "frames")

    logging.info(f"Results saved to {output_dir} ({len(written)} frames)")
    logging.info("Final population by agent type:")
    final_day = results.population["day"].max()
    print(results.population[results.population["day"] == final_day].groupby("agent_type")["count"].mean())


if __name__ == "__main__":
    main()
