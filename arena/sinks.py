"""
Metrics sinks for day-level output.

Sinks are append-only, row-oriented destinations. Each sink is created with
a fixed column layout and every appended row must carry exactly those
columns in that order; downstream analysis reads the CSV files by position.

Layouts:
    average:       seed, day, random_baseline, optimum_baseline,
                   type_<t>_average..., type_<t>_std...
    individual:    seed, day, exchange, agent_id, agent_type, satisfaction
    distribution:  day, agent_type, satisfaction
    population:    day, agent_type, count
    round_average: day, exchange, type_<t>_average...

Usage:
    with DaySinks.to_csv(Path("results/run"), agent_types=[1, 2]) as sinks:
        run_day(day, population, config, sinks, rng, seed)
"""

import csv
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol, Sequence, TextIO

import pandas as pd

from arena.errors import SinkWriteError

INDIVIDUAL_COLUMNS = ("seed", "day", "exchange", "agent_id", "agent_type", "satisfaction")
DISTRIBUTION_COLUMNS = ("day", "agent_type", "satisfaction")
POPULATION_COLUMNS = ("day", "agent_type", "count")


def average_columns(agent_types: Iterable[int]) -> tuple[str, ...]:
    types = list(agent_types)
    return (
        ("seed", "day", "random_baseline", "optimum_baseline")
        + tuple(f"type_{t}_average" for t in types)
        + tuple(f"type_{t}_std" for t in types)
    )


def round_average_columns(agent_types: Iterable[int]) -> tuple[str, ...]:
    return ("day", "exchange") + tuple(f"type_{t}_average" for t in agent_types)


class MetricsSink(Protocol):
    """Anything rows can be appended to."""

    columns: Sequence[str]

    def append(self, row: Mapping[str, Any]) -> None: ...


def _check_columns(columns: Sequence[str], row: Mapping[str, Any]) -> None:
    if tuple(row.keys()) != tuple(columns):
        raise ValueError(f"Row columns {list(row.keys())} do not match layout {list(columns)}")


class MemorySink:
    """
    Collects rows in memory.

    Attributes:
        columns: Column layout
        rows: Appended rows, in order
    """

    def __init__(self, columns: Sequence[str]) -> None:
        self.columns = tuple(columns)
        self.rows: list[dict[str, Any]] = []

    def append(self, row: Mapping[str, Any]) -> None:
        _check_columns(self.columns, row)
        self.rows.append(dict(row))

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=list(self.columns))

    def __len__(self) -> int:
        return len(self.rows)


class CsvSink:
    """
    Appends rows to a CSV file, writing the header on open.

    Usage:
        sink = CsvSink(Path("results/population.csv"), POPULATION_COLUMNS)
        sink.append({"day": 1, "agent_type": 1, "count": 48})
        sink.close()
    """

    def __init__(self, output_path: Path, columns: Sequence[str]) -> None:
        self.output_path = output_path
        self.columns = tuple(columns)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file: TextIO | None = None
        self._writer: Any = None
        self._open()

    def _open(self) -> None:
        self._file = open(self.output_path, "w", newline="")
        self._writer = csv.writer(self._file)
        self._writer.writerow(self.columns)

    def append(self, row: Mapping[str, Any]) -> None:
        if self._file is None:
            raise ValueError(f"CSV sink {self.output_path} is closed")
        _check_columns(self.columns, row)
        self._writer.writerow([row[c] for c in self.columns])

    def flush(self) -> None:
        if self._file:
            self._file.flush()

    def close(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    def __enter__(self) -> "CsvSink":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def append_row(sink: MetricsSink, row: Mapping[str, Any]) -> None:
    """
    Append a row, converting any failure into SinkWriteError.

    Raises:
        SinkWriteError: With the original exception chained
    """
    try:
        sink.append(row)
    except Exception as exc:
        raise SinkWriteError(f"Failed to append row to {sink!r}: {exc}") from exc


@dataclass
class DaySinks:
    """
    The sinks a day writes to. A sink left as None is skipped.
    """

    average: MetricsSink | None = None
    individual: MetricsSink | None = None
    distribution: MetricsSink | None = None
    population: MetricsSink | None = None
    round_average: MetricsSink | None = None

    @classmethod
    def in_memory(cls, agent_types: Iterable[int]) -> "DaySinks":
        types = list(agent_types)
        return cls(
            average=MemorySink(average_columns(types)),
            individual=MemorySink(INDIVIDUAL_COLUMNS),
            distribution=MemorySink(DISTRIBUTION_COLUMNS),
            population=MemorySink(POPULATION_COLUMNS),
            round_average=MemorySink(round_average_columns(types)),
        )

    @classmethod
    def to_csv(cls, output_dir: Path, agent_types: Iterable[int], prefix: str = "") -> "DaySinks":
        """
        Open one CSV file per sink under ``output_dir``.

        If any file fails to open, the ones already opened are closed before
        the error propagates.
        """
        types = list(agent_types)
        layouts = {
            "average": ("average_satisfaction.csv", average_columns(types)),
            "individual": ("individual_satisfaction.csv", INDIVIDUAL_COLUMNS),
            "distribution": ("end_of_day_satisfaction.csv", DISTRIBUTION_COLUMNS),
            "population": ("population_distribution.csv", POPULATION_COLUMNS),
            "round_average": ("round_average_satisfaction.csv", round_average_columns(types)),
        }
        opened: dict[str, CsvSink] = {}
        try:
            for name, (filename, columns) in layouts.items():
                opened[name] = CsvSink(output_dir / f"{prefix}{filename}", columns)
        except Exception:
            for sink in opened.values():
                sink.close()
            raise
        return cls(**opened)

    def close(self) -> None:
        for f in fields(self):
            sink = getattr(self, f.name)
            if sink is not None and hasattr(sink, "close"):
                sink.close()

    def __enter__(self) -> "DaySinks":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
