from readroute.models import RolloutSchedule


def current_percentage(
    schedule: RolloutSchedule,
    started_at: float,
    now: float,
) -> int:
    """
    Traffic percentage for ``now`` given a rollout that began at ``started_at``.

    Walks the phases in order, consuming each finite phase's duration from
    the elapsed time. The first phase that still contains the remaining
    elapsed time (or is open-ended) supplies the percentage. Past the end
    of every finite phase the last phase's percentage holds. An empty
    schedule routes nothing, and a start in the future counts as zero
    elapsed.
    """
    if len(schedule) == 0:
        return 0

    elapsed = max(0.0, now - started_at)

    for phase in schedule:
        if phase.duration is None or elapsed <= phase.duration:
            return phase.percentage

        elapsed -= phase.duration

    return schedule.phases[-1].percentage


class RolloutScheduler:
    __slots__ = ("_schedule",)

    def __init__(self, schedule: RolloutSchedule) -> None:
        self._schedule = schedule

    @property
    def schedule(self) -> RolloutSchedule:
        return self._schedule

    def current_percentage(self, started_at: float, now: float) -> int:
        return current_percentage(self._schedule, started_at, now)
