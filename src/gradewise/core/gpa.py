from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from gradewise.core.grades import DEFAULT_GRADE_SCALE, MAX_GPA, GradeScale
from gradewise.core.subject import DEFAULT_MIN_FLOOR_SCORE, Subject, SubjectGradeEngine

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_SEMESTERS = 8
BEST_CASE_GPA = MAX_GPA
WORST_CASE_GPA = 2.0


@dataclass(frozen=True)
class Semester:
    id: int
    name: str
    subjects: Tuple[Subject, ...] = field(default_factory=tuple)
    owner_id: str = ""


class SemesterGradeEngine:
    def __init__(
        self,
        semester: Semester,
        *,
        scale: GradeScale = DEFAULT_GRADE_SCALE,
        min_floor_score: float = DEFAULT_MIN_FLOOR_SCORE,
    ) -> None:
        self.semester = semester
        self.scale = scale
        self.min_floor_score = min_floor_score

    def subject_engine(self, subject: Subject) -> SubjectGradeEngine:
        return SubjectGradeEngine(subject, scale=self.scale, min_floor_score=self.min_floor_score)

    def subject_gpas(self) -> List[float]:
        return [self.subject_engine(subject).gpa() for subject in self.semester.subjects]

    def gpa(self) -> float:
        """
        Mean of subject GPAs, skipping subjects whose GPA is 0.
        An ungraded subject reports 0 and must not drag down the graded ones.
        """
        total = 0.0
        counted = 0
        for subject_gpa in self.subject_gpas():
            if subject_gpa > 0:
                total += subject_gpa
                counted += 1
        if counted == 0:
            return 0.0
        return total / counted


@dataclass(frozen=True)
class GPAProjection:
    current: float
    best: float
    worst: float
    realistic: float


class ProgramGPAProjector:
    """Cumulative GPA and what-if projections over a fixed-length program."""

    def __init__(self, completed_gpas: Iterable[float], total_semesters: int = DEFAULT_TOTAL_SEMESTERS) -> None:
        self.completed_gpas = tuple(value for value in completed_gpas if value > 0)
        self.total_semesters = total_semesters

    @classmethod
    def from_semesters(
        cls,
        semesters: Iterable[Semester],
        total_semesters: int = DEFAULT_TOTAL_SEMESTERS,
        *,
        scale: GradeScale = DEFAULT_GRADE_SCALE,
    ) -> "ProgramGPAProjector":
        return cls(
            (SemesterGradeEngine(semester, scale=scale).gpa() for semester in semesters),
            total_semesters,
        )

    @property
    def completed(self) -> int:
        return len(self.completed_gpas)

    @property
    def remaining(self) -> int:
        return self.total_semesters - self.completed

    def current_gpa(self) -> float:
        if not self.completed_gpas:
            return 0.0
        return sum(self.completed_gpas) / len(self.completed_gpas)

    def projected_gpa(self, future_gpa: float) -> float:
        """Cumulative GPA if every remaining semester lands at ``future_gpa``."""
        current = self.current_gpa()
        if self.remaining <= 0:
            return current
        return (current * self.completed + future_gpa * self.remaining) / self.total_semesters

    def projections(self, realistic_gpa: Optional[float] = None) -> GPAProjection:
        current = self.current_gpa()
        if self.remaining <= 0:
            return GPAProjection(current, current, current, current)

        best = min(MAX_GPA, self.projected_gpa(BEST_CASE_GPA))
        worst = self.projected_gpa(WORST_CASE_GPA)
        # Holding the current pace leaves the cumulative GPA where it is.
        realistic = current if realistic_gpa is None else self.projected_gpa(realistic_gpa)
        return GPAProjection(current=current, best=best, worst=worst, realistic=realistic)

    def required_future_gpa(self, goal_gpa: float) -> float:
        if self.completed == 0:
            return goal_gpa
        current = self.current_gpa()
        if self.remaining <= 0:
            return current
        required = ((goal_gpa * self.total_semesters) - (current * self.completed)) / self.remaining
        logger.debug("goal=%s current=%s required=%s", goal_gpa, current, required)
        return max(0.0, min(MAX_GPA, required))

    def difficulty(self, goal_gpa: float) -> float:
        return difficulty_rating(self.current_gpa(), goal_gpa, self.completed, self.total_semesters)


def difficulty_rating(current_gpa: float, target_gpa: float, completed: int, total: int) -> float:
    """
    0.0 (already there) to 1.0 (out of reach) for hitting ``target_gpa``.
    Required GPAs above 3.5 are rescaled onto 0.8-1.0.
    """
    if completed >= total:
        return 1.0
    required = ((target_gpa * total) - (current_gpa * completed)) / (total - completed)
    if required <= 0.0:
        return 0.0
    if required > MAX_GPA:
        return 1.0
    if required > 3.5:
        return 0.8 + (required - 3.5) / 2.5
    return required / MAX_GPA
