from __future__ import annotations

from enum import IntEnum


class Role(IntEnum):
    """Totally ordered privilege levels. UNKNOWN is the bottom value and grants nothing."""

    UNKNOWN = 0
    VIEWER = 1
    MANAGER = 2
    OWNER = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_string(cls, value: str) -> "Role":
        try:
            return cls[str(value or "").strip().upper()]
        except KeyError:
            return cls.UNKNOWN

    @classmethod
    def coerce(cls, value: object) -> "Role":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return cls.UNKNOWN
        return cls.from_string(str(value))

    def at_least(self, minimum: "Role") -> bool:
        if self is Role.UNKNOWN:
            return False
        return self >= minimum

    def insufficient_for(self, minimum: "Role") -> bool:
        return not self.at_least(minimum)
