from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)


class EvaluationTier(StrEnum):
    RUSHED = "Rushed"
    ORDINARY = "Ordinary"
    FULFILLING = "Fulfilling"
    PERFECT = "Perfect"


@dataclass(frozen=True, slots=True)
class TierBand:
    tier: EvaluationTier
    lower: float  # inclusive
    upper: float  # exclusive, except for the last band
    description: str

    def contains(self, percentage: float, *, closed: bool = False) -> bool:
        if closed:
            return self.lower <= percentage <= self.upper
        return self.lower <= percentage < self.upper


TIER_TABLE: tuple[TierBand, ...] = (
    TierBand(EvaluationTier.RUSHED, 0.0, 31.0, "Life went by too fast; many good moments were missed."),
    TierBand(EvaluationTier.ORDINARY, 31.0, 61.0, "A plain life, with its own small highlights."),
    TierBand(EvaluationTier.FULFILLING, 61.0, 86.0, "Most chances were taken; a full life."),
    TierBand(EvaluationTier.PERFECT, 86.0, 100.0, "Almost no regrets. The life you hoped for."),
)


def tier_for_percentage(percentage: float) -> TierBand:
    """Half-open bands ``[lower, upper)``; the top band is closed."""

    last = len(TIER_TABLE) - 1
    for i, band in enumerate(TIER_TABLE):
        if band.contains(percentage, closed=i == last):
            return band
    return TIER_TABLE[0] if percentage < TIER_TABLE[0].lower else TIER_TABLE[last]


@dataclass(frozen=True, slots=True)
class ScoreRecord:
    id: str
    points: int
    stage_id: str
    completed_at_game_time_ms: float


@dataclass(frozen=True, slots=True)
class Evaluation:
    tier: EvaluationTier
    percentage: float
    total_score: int
    completed_count: int
    total_possible_events: int
    description: str = ""


@dataclass(frozen=True, slots=True)
class StageBreakdown:
    event_count: int
    total_points: int
    average_points: float


@dataclass(frozen=True, slots=True)
class ScoreStatistics:
    total_score: int
    completed_count: int
    total_possible_events: int
    completion_percentage: float
    average_points_per_event: float
    stages: dict[str, StageBreakdown]


@dataclass(frozen=True, slots=True)
class NextTierRequirement:
    tier: EvaluationTier
    events_needed: int
    percentage_needed: float


class ScoreLedger:
    """Ordered record of completed challenges and the running total."""

    def __init__(self, *, total_possible_events: int = 0) -> None:
        self._records: list[ScoreRecord] = []
        self._ids: set[str] = set()
        self._total_score = 0
        self._total_possible_events = max(0, int(total_possible_events))

    @property
    def total_score(self) -> int:
        return self._total_score

    @property
    def completed_count(self) -> int:
        return len(self._records)

    @property
    def total_possible_events(self) -> int:
        return self._total_possible_events

    def records(self) -> list[ScoreRecord]:
        return list(self._records)

    def add_completed_event(self, record: ScoreRecord) -> bool:
        """Append ``record`` unless its id is already in the ledger."""

        if record.id in self._ids:
            return False
        self._records.append(record)
        self._ids.add(record.id)
        self._total_score += record.points
        logger.debug("scored %s (+%d, total %d)", record.id, record.points, self._total_score)
        return True

    def set_total_possible_events(self, count: int) -> None:
        self._total_possible_events = max(0, int(count))

    def increment_total_possible_events(self, increment: int = 1) -> None:
        self._total_possible_events = max(0, self._total_possible_events + int(increment))

    def completion_percentage(self) -> float:
        if self._total_possible_events <= 0:
            return 0.0
        return min(100.0, self.completed_count * 100.0 / self._total_possible_events)

    def evaluate(self) -> Evaluation:
        percentage = self.completion_percentage()
        band = tier_for_percentage(percentage)
        return Evaluation(
            tier=band.tier,
            percentage=percentage,
            total_score=self._total_score,
            completed_count=self.completed_count,
            total_possible_events=self._total_possible_events,
            description=band.description,
        )

    def records_by_stage(self) -> dict[str, list[ScoreRecord]]:
        grouped: dict[str, list[ScoreRecord]] = {}
        for record in self._records:
            grouped.setdefault(record.stage_id or "unknown", []).append(record)
        return grouped

    def statistics(self) -> ScoreStatistics:
        stages: dict[str, StageBreakdown] = {}
        for stage_id, records in self.records_by_stage().items():
            points = sum(r.points for r in records)
            stages[stage_id] = StageBreakdown(
                event_count=len(records),
                total_points=points,
                average_points=points / len(records),
            )
        n = self.completed_count
        return ScoreStatistics(
            total_score=self._total_score,
            completed_count=n,
            total_possible_events=self._total_possible_events,
            completion_percentage=self.completion_percentage(),
            average_points_per_event=0.0 if n == 0 else self._total_score / n,
            stages=stages,
        )

    def next_tier_requirement(self) -> NextTierRequirement | None:
        """What it takes to reach the next tier up; None once in the top tier."""

        current = self.completion_percentage()
        for band in TIER_TABLE:
            if current < band.lower:
                needed = math.ceil(band.lower / 100.0 * self._total_possible_events - self.completed_count)
                return NextTierRequirement(
                    tier=band.tier,
                    events_needed=max(0, needed),
                    percentage_needed=max(0.0, band.lower - current),
                )
        return None

    def reset(self) -> None:
        self._records.clear()
        self._ids.clear()
        self._total_score = 0
        self._total_possible_events = 0
