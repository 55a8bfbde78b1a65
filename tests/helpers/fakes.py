from __future__ import annotations

from typing import List


class FakeClock:
    """Millisecond clock handed to the managers through their `now` parameter."""

    def __init__(self, start: int = 0):
        self.now = int(start)

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += int(ms)
        return self.now


class DummyLogger:
    def __init__(self) -> None:
        self.infos: List[str] = []
        self.warnings: List[str] = []
        self.errors: List[str] = []

    def info(self, msg, *args, **_k):  # noqa: ANN001
        self.infos.append(msg % args if args else msg)

    def warning(self, msg, *args, **_k):  # noqa: ANN001
        self.warnings.append(msg % args if args else msg)

    def error(self, msg, *args, **_k):  # noqa: ANN001
        self.errors.append(msg % args if args else msg)
