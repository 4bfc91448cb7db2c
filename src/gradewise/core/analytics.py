from __future__ import annotations

import heapq
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from gradewise.core.assessments import AssessmentKind
from gradewise.core.gpa import Semester, SemesterGradeEngine
from gradewise.core.grades import DEFAULT_GRADE_SCALE, GradeScale, next_grade_up
from gradewise.core.subject import Subject, SubjectGradeEngine

SCORE_BANDS: Tuple[Tuple[str, float], ...] = (
    ("90-100", 90.0),
    ("80-89", 80.0),
    ("70-79", 70.0),
    ("60-69", 60.0),
)
BELOW_BANDS = "Below 60"


@dataclass(frozen=True)
class ScoreStatistics:
    count: int
    min: float
    max: float
    mean: float
    median: float
    standard_deviation: float


@dataclass(frozen=True)
class PendingAssessment:
    kind: AssessmentKind
    label: str
    score: float
    weight: float


@dataclass(frozen=True)
class GradeTarget:
    letter_grade: str
    cutoff: float
    needed_average: Optional[float]

    @property
    def reachable(self) -> bool:
        return self.needed_average is not None and self.needed_average <= 100.0


def score_statistics(scores: Iterable[float]) -> ScoreStatistics:
    values = sorted(scores)
    if not values:
        return ScoreStatistics(0, 0.0, 0.0, 0.0, 0.0, 0.0)

    count = len(values)
    mean = sum(values) / count
    middle = count // 2
    if count % 2 == 0:
        median = (values[middle - 1] + values[middle]) / 2.0
    else:
        median = values[middle]
    variance = sum((value - mean) ** 2 for value in values) / count
    return ScoreStatistics(count, values[0], values[-1], mean, median, math.sqrt(variance))


def _band_for(score: float) -> str:
    for band, minimum in SCORE_BANDS:
        if score >= minimum:
            return band
    return BELOW_BANDS


def grade_distribution(subject: Subject) -> Dict[AssessmentKind, Dict[str, int]]:
    distribution: Dict[AssessmentKind, Dict[str, int]] = {}
    for aggregate in subject.ordered_types():
        if aggregate.weight <= 0:
            continue
        counts = {band: 0 for band, _ in SCORE_BANDS}
        counts[BELOW_BANDS] = 0
        for record in aggregate.records:
            counts[_band_for(record.score)] += 1
        distribution[aggregate.kind] = counts
    return distribution


def grade_trend(subject: Subject, kind: AssessmentKind = AssessmentKind.ASSIGNMENT) -> List[Tuple[str, float]]:
    aggregate = subject.types.get(kind)
    if aggregate is None or aggregate.weight <= 0:
        return []
    records = sorted(aggregate.records, key=lambda record: record.sequence_number)
    return [(record.label(kind), record.score) for record in records]


def _scored_records(subject: Subject) -> List[Tuple[str, float]]:
    scored = []
    for aggregate in subject.ordered_types():
        if aggregate.weight <= 0:
            continue
        for record in aggregate.records:
            scored.append((record.label(aggregate.kind), record.score))
    return scored


def strengths_and_weaknesses(subject: Subject, limit: int = 3) -> Dict[str, List[Tuple[str, float]]]:
    scored = _scored_records(subject)
    return {
        "strengths": heapq.nlargest(limit, scored, key=lambda item: item[1]),
        "weaknesses": heapq.nsmallest(limit, scored, key=lambda item: item[1]),
    }


def pending_by_impact(subject: Subject) -> List[PendingAssessment]:
    pending = []
    for aggregate in subject.ordered_types():
        if aggregate.weight <= 0:
            continue
        per_record = aggregate.record_weight()
        for record in sorted(aggregate.remaining(), key=lambda r: r.sequence_number):
            pending.append(PendingAssessment(aggregate.kind, record.label(aggregate.kind), record.score, per_record))
    # sorted() is stable, so equal weights keep category priority then sequence order.
    return sorted(pending, key=lambda item: -item.weight)


def next_grade_target(subject: Subject, scale: GradeScale = DEFAULT_GRADE_SCALE) -> Optional[GradeTarget]:
    engine = SubjectGradeEngine(subject, scale=scale)
    percentage = engine.overall_percentage()
    upgrade = next_grade_up(engine.letter_grade(), scale)
    if upgrade is None:
        return None

    letter, cutoff = upgrade
    pending_weight = sum(item.weight for item in pending_by_impact(subject))
    if pending_weight <= 0:
        return GradeTarget(letter, cutoff, None)
    needed = ((cutoff - percentage) / pending_weight) * 100.0 + percentage
    return GradeTarget(letter, cutoff, needed)


def weakest_kind(subject: Subject) -> Optional[Tuple[AssessmentKind, float]]:
    weakest: Optional[Tuple[AssessmentKind, float]] = None
    for aggregate in subject.ordered_types():
        if aggregate.weight <= 0:
            continue
        average = aggregate.average_score()
        if weakest is None or average < weakest[1]:
            weakest = (aggregate.kind, average)
    return weakest


def sorted_by_gpa(semester: Semester, scale: GradeScale = DEFAULT_GRADE_SCALE) -> List[Subject]:
    return sorted(
        semester.subjects,
        key=lambda subject: SubjectGradeEngine(subject, scale=scale).gpa(),
        reverse=True,
    )


def subjects_below_gpa(
    semester: Semester, target_gpa: float, scale: GradeScale = DEFAULT_GRADE_SCALE
) -> List[Subject]:
    engine = SemesterGradeEngine(semester, scale=scale)
    return [subject for subject in semester.subjects if engine.subject_engine(subject).gpa() < target_gpa]


def group_by_letter(subjects: Iterable[Subject], scale: GradeScale = DEFAULT_GRADE_SCALE) -> Dict[str, List[Subject]]:
    groups: Dict[str, List[Subject]] = {}
    for subject in subjects:
        letter = SubjectGradeEngine(subject, scale=scale).letter_grade()
        groups.setdefault(letter, []).append(subject)
    return groups
