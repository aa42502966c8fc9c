"""
Rollout schedule models.

A schedule is an ordered ramp of phases, e.g. ``0%`` for an hour, then
``50%`` for an hour, then ``100%`` forever. It is validated once, when it
is built, so routing never has to deal with a malformed schedule.
"""

from dataclasses import dataclass, field

from readroute.env.time_parser import TimeParser
from readroute.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class RolloutPhase:
    percentage: int
    duration: float | None = None

    def __post_init__(self):
        if isinstance(self.percentage, bool) or not isinstance(self.percentage, int):
            raise ConfigurationError(
                f"Rollout percentage must be an int, got {self.percentage!r}"
            )

        if not 0 <= self.percentage <= 100:
            raise ConfigurationError(
                f"Rollout percentage {self.percentage} outside [0, 100]"
            )

        if self.duration is not None and self.duration < 0:
            raise ConfigurationError(
                f"Rollout phase duration {self.duration} is negative"
            )


@dataclass(frozen=True, slots=True)
class RolloutSchedule:
    phases: tuple[RolloutPhase, ...] = field(default_factory=tuple)

    def __post_init__(self):
        phases = tuple(self.phases)
        object.__setattr__(self, "phases", phases)

        for idx, phase in enumerate(phases):
            if not isinstance(phase, RolloutPhase):
                raise ConfigurationError(f"Invalid rollout phase: {phase!r}")

            # Only the final phase may be open-ended.
            if phase.duration is None and idx != len(phases) - 1:
                raise ConfigurationError(
                    f"Rollout phase {idx} has no duration but is not the last phase"
                )

    @classmethod
    def of(cls, *phases: tuple[int, float | None]) -> "RolloutSchedule":
        return cls(
            phases=tuple(
                RolloutPhase(percentage=percentage, duration=duration)
                for percentage, duration in phases
            )
        )

    @classmethod
    def parse(cls, schedule: str) -> "RolloutSchedule":
        """
        Parse the compact config form ``"0%:1h,50%:30m,100%"``.

        Each comma-separated phase is ``<percentage>%[:<duration>]``.
        Durations use time strings (``30s``, ``5m``, ``1h``, ``1d``).
        """
        parser = TimeParser()
        phases: list[RolloutPhase] = []

        for raw_phase in schedule.split(","):
            raw_phase = raw_phase.strip()
            if not raw_phase:
                continue

            percentage_part, _, duration_part = raw_phase.partition(":")
            percentage_part = percentage_part.strip().rstrip("%").strip()

            try:
                percentage = int(percentage_part)

            except ValueError as err:
                raise ConfigurationError(
                    f"Invalid rollout percentage in phase {raw_phase!r}"
                ) from err

            duration = parser.parse(duration_part) if duration_part.strip() else None
            phases.append(RolloutPhase(percentage=percentage, duration=duration))

        return cls(phases=tuple(phases))

    @property
    def total_duration(self) -> float:
        return sum(
            phase.duration for phase in self.phases if phase.duration is not None
        )

    def __len__(self) -> int:
        return len(self.phases)

    def __iter__(self):
        return iter(self.phases)


@dataclass(frozen=True, slots=True)
class RolloutState:
    name: str
    started_at: float
