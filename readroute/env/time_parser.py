import re
from datetime import timedelta

from readroute.errors import ConfigurationError


class TimeParser:
    def __init__(self) -> None:
        self._units = {
            "s": "seconds",
            "m": "minutes",
            "h": "hours",
            "d": "days",
            "w": "weeks",
        }
        self._pattern = re.compile(
            r"(?P<val>\d+(\.\d+)?)(?P<unit>[smhdw]?)",
            flags=re.I,
        )

    def parse(self, time_amount: str | int | float) -> float:
        if isinstance(time_amount, (int, float)):
            return float(time_amount)

        cleaned = time_amount.strip()
        if not cleaned or self._pattern.sub("", cleaned).strip():
            raise ConfigurationError(f"Invalid time amount: {time_amount!r}")

        amounts: dict[str, float] = {}
        for match in self._pattern.finditer(cleaned):
            unit = self._units.get(match.group("unit").lower(), "seconds")
            amounts[unit] = amounts.get(unit, 0.0) + float(match.group("val"))

        return float(timedelta(**amounts).total_seconds())
