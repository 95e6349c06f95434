from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from pulse.errors import ValidationError

PERCENT_TARGET = 100.0
PERCENT_TOLERANCE = 0.02
_FLOAT_SLACK = 1e-9


@dataclass(frozen=True)
class WorkerLine:
    name: str
    minutes_worked: float = 0.0
    percent_contribution: float = 0.0
    payout: float = 0.0

    @property
    def is_placeholder(self) -> bool:
        return not self.name.strip() or self.percent_contribution == 0


def _format_percent(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class PayoutSplit:
    container_pay: float
    lines: tuple[WorkerLine, ...]
    percent_sum: float

    @property
    def has_workers(self) -> bool:
        return any(not line.is_placeholder for line in self.lines)

    @property
    def is_valid(self) -> bool:
        if not self.has_workers:
            return True
        return abs(self.percent_sum - PERCENT_TARGET) <= PERCENT_TOLERANCE + _FLOAT_SLACK

    @property
    def error(self) -> str | None:
        if self.is_valid:
            return None
        return (
            "Worker contribution percentages must total 100% "
            f"(currently {_format_percent(self.percent_sum)}%)."
        )

    @property
    def total_payout(self) -> float:
        return sum(line.payout for line in self.lines if not line.is_placeholder)

    def ensure_valid(self) -> None:
        message = self.error
        if message is not None:
            raise ValidationError(message)

    def persisted_lines(self) -> list[dict]:
        return [
            {
                "name": line.name.strip(),
                "minutes_worked": line.minutes_worked,
                "percent_contribution": line.percent_contribution,
                "payout": round(line.payout, 2),
            }
            for line in self.lines
            if not line.is_placeholder
        ]


def allocate(container_pay: float, workers: Iterable[WorkerLine]) -> PayoutSplit:
    lines = tuple(
        replace(worker, payout=container_pay * worker.percent_contribution / 100)
        for worker in workers
    )
    percent_sum = sum(line.percent_contribution for line in lines if not line.is_placeholder)
    return PayoutSplit(container_pay=container_pay, lines=lines, percent_sum=percent_sum)
