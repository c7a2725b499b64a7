from dataclasses import dataclass
from typing import Optional

import datetime
import re


DURATION_PATTERN = re.compile(r"^(\d+)([mhd])$")

UNIT_MILLISECONDS = {
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}


@dataclass(frozen=True)
class Duration:
    amount: int
    unit: str

    @property
    def milliseconds(self) -> int:
        return self.amount * UNIT_MILLISECONDS[self.unit]

    def as_timedelta(self) -> datetime.timedelta:
        return datetime.timedelta(milliseconds=self.milliseconds)

    def __str__(self) -> str:
        return f"{self.amount}{self.unit}"


def parse_duration(text: Optional[str]) -> Optional[Duration]:
    """Parse strings like ``30m``, ``1h`` or ``7d``.

    Returns ``None`` for anything else so callers can report a user error.
    """
    if not text:
        return None
    match = DURATION_PATTERN.match(text)
    if match is None:
        return None
    amount, unit = match.groups()
    return Duration(amount=int(amount), unit=unit)


def duration_to_ms(text: Optional[str]) -> Optional[int]:
    duration = parse_duration(text)
    if duration is None:
        return None
    return duration.milliseconds
