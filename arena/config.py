"""
Arena configuration.

Converts the hydra/omegaconf config tree into a frozen dataclass consumed by
the day orchestrator, and validates it before any agent is touched.
"""

from dataclasses import dataclass, field

from omegaconf import DictConfig, OmegaConf

from arena.errors import ConfigurationError


@dataclass(frozen=True)
class ArenaConfig:
    """
    Parameters for simulating a single day.

    Attributes:
        exchanges_per_day: Number of pairwise exchange rounds per day
        maximum_peak_consumption: Units available for each time slot
        unique_time_slots: Number of distinct time slot labels (1..N)
        slots_per_agent: Number of time slots each agent requests
        number_of_agents_to_evolve: Social learning iterations per day
        unique_agent_types: Agent type tags tracked in the metrics, in column order
        days_of_interest: Days whose per-agent satisfactions are snapshotted
        additional_data: Record per-exchange and per-day average rows
    """

    exchanges_per_day: int = 200
    maximum_peak_consumption: int = 16
    unique_time_slots: int = 24
    slots_per_agent: int = 4
    number_of_agents_to_evolve: int = 10
    unique_agent_types: tuple[int, ...] = (1, 2)
    days_of_interest: frozenset[int] = field(default_factory=lambda: frozenset({1, 100, 200, 500}))
    additional_data: bool = False

    @property
    def total_capacity(self) -> int:
        """Total number of units in a freshly built pool."""
        return self.unique_time_slots * self.maximum_peak_consumption

    def is_day_of_interest(self, day: int) -> bool:
        return day in self.days_of_interest

    def validate(self, population_size: int | None = None) -> None:
        """
        Check that a day can be simulated with this configuration.

        Args:
            population_size: Number of agents, if known. Enables the checks
                that depend on the population.

        Raises:
            ConfigurationError: On the first invalid parameter found
        """
        if self.exchanges_per_day <= 0:
            raise ConfigurationError(
                f"exchanges_per_day must be positive, got {self.exchanges_per_day}"
            )
        if self.unique_time_slots <= 0:
            raise ConfigurationError(
                f"unique_time_slots must be positive, got {self.unique_time_slots}"
            )
        if self.maximum_peak_consumption <= 0:
            raise ConfigurationError(
                f"maximum_peak_consumption must be positive, got {self.maximum_peak_consumption}"
            )
        if self.slots_per_agent <= 0:
            raise ConfigurationError(
                f"slots_per_agent must be positive, got {self.slots_per_agent}"
            )
        if self.slots_per_agent > self.total_capacity:
            raise ConfigurationError(
                f"slots_per_agent ({self.slots_per_agent}) exceeds total capacity "
                f"({self.total_capacity})"
            )
        if self.number_of_agents_to_evolve < 0:
            raise ConfigurationError(
                f"number_of_agents_to_evolve must be >= 0, got {self.number_of_agents_to_evolve}"
            )
        if not self.unique_agent_types:
            raise ConfigurationError("unique_agent_types must not be empty")
        if len(set(self.unique_agent_types)) != len(self.unique_agent_types):
            raise ConfigurationError(
                f"unique_agent_types contains duplicates: {list(self.unique_agent_types)}"
            )

        if population_size is not None:
            if population_size < 1:
                raise ConfigurationError("population must contain at least one agent")
            if self.number_of_agents_to_evolve > 0 and population_size < 2:
                raise ConfigurationError(
                    "social learning needs at least two agents to compare"
                )

    @classmethod
    def from_dictconfig(cls, cfg: DictConfig) -> "ArenaConfig":
        """
        Build an ArenaConfig from a composed hydra config.

        Reads the ``arena`` group and ``agents.agent_types``. Missing keys
        fall back to the dataclass defaults.

        Args:
            cfg: Root config with ``arena`` and ``agents`` groups

        Returns:
            Frozen ArenaConfig
        """
        defaults = cls()
        arena = cfg.get("arena", OmegaConf.create({}))
        agents = cfg.get("agents", OmegaConf.create({}))

        agent_types = agents.get("agent_types", None)
        days_of_interest = arena.get("days_of_interest", None)

        return cls(
            exchanges_per_day=int(arena.get("exchanges_per_day", defaults.exchanges_per_day)),
            maximum_peak_consumption=int(
                arena.get("maximum_peak_consumption", defaults.maximum_peak_consumption)
            ),
            unique_time_slots=int(arena.get("unique_time_slots", defaults.unique_time_slots)),
            slots_per_agent=int(arena.get("slots_per_agent", defaults.slots_per_agent)),
            number_of_agents_to_evolve=int(
                arena.get("number_of_agents_to_evolve", defaults.number_of_agents_to_evolve)
            ),
            unique_agent_types=(
                tuple(int(t) for t in agent_types)
                if agent_types is not None
                else defaults.unique_agent_types
            ),
            days_of_interest=(
                frozenset(int(d) for d in days_of_interest)
                if days_of_interest is not None
                else defaults.days_of_interest
            ),
            additional_data=bool(arena.get("additional_data", defaults.additional_data)),
        )
