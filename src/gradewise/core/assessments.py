from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class AssessmentKind(str, Enum):
    ASSIGNMENT = "assignment"
    QUIZ = "quiz"
    MIDTERM = "midterm"
    FINAL_EXAM = "final_exam"
    FINAL_PROJECT = "final_project"

    @property
    def counted(self) -> bool:
        """Assignments and quizzes carry a configurable item count; the rest are singletons."""
        return self in (AssessmentKind.ASSIGNMENT, AssessmentKind.QUIZ)

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def priority(self) -> int:
        return CATEGORY_PRIORITY.index(self)


_DISPLAY_NAMES = {
    AssessmentKind.ASSIGNMENT: "Assignments",
    AssessmentKind.QUIZ: "Quizzes",
    AssessmentKind.MIDTERM: "Midterm",
    AssessmentKind.FINAL_EXAM: "Final Exam",
    AssessmentKind.FINAL_PROJECT: "Final Project",
}

# Fixed order used wherever kinds must be iterated deterministically.
CATEGORY_PRIORITY: Tuple[AssessmentKind, ...] = (
    AssessmentKind.ASSIGNMENT,
    AssessmentKind.QUIZ,
    AssessmentKind.MIDTERM,
    AssessmentKind.FINAL_EXAM,
    AssessmentKind.FINAL_PROJECT,
)


@dataclass(frozen=True)
class AssessmentRecord:
    id: int
    type_id: int
    sequence_number: int
    score: float = 0.0
    is_final: bool = False

    def label(self, kind: AssessmentKind) -> str:
        if kind.counted:
            return f"{kind.value.capitalize()} {self.sequence_number}"
        return kind.display_name


@dataclass(frozen=True)
class AssessmentTypeAggregate:
    """One weighted category of a subject and the records graded under it.

    ``weight`` is the percent of the subject grade the category is worth.
    ``expected_count`` is informational; the records themselves drive every
    calculation.
    """

    kind: AssessmentKind
    weight: float
    expected_count: int = 1
    records: Tuple[AssessmentRecord, ...] = field(default_factory=tuple)
    id: int = 0

    def average_score(self) -> float:
        # Ungraded records sit at 0 and count toward the average until graded.
        if not self.records:
            return 0.0
        return sum(record.score for record in self.records) / len(self.records)

    def weighted_contribution(self) -> float:
        return self.weight * (self.average_score() / 100.0)

    def record_weight(self) -> float:
        if not self.records:
            return self.weight
        return self.weight / len(self.records)

    def finalized(self) -> Tuple[AssessmentRecord, ...]:
        return tuple(record for record in self.records if record.is_final)

    def remaining(self) -> Tuple[AssessmentRecord, ...]:
        return tuple(record for record in self.records if not record.is_final)

    def earned_points(self) -> float:
        per_record = self.record_weight()
        return sum((record.score / 100.0) * per_record for record in self.finalized())

    def remaining_weight(self) -> float:
        """Weight still open; a weighted category with no records is fully open."""
        if not self.records:
            return self.weight
        return self.record_weight() * len(self.remaining())

    def remaining_count(self) -> int:
        if not self.records:
            return 1
        return len(self.remaining())
