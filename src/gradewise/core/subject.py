from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional

from gradewise.core.assessments import CATEGORY_PRIORITY, AssessmentKind, AssessmentTypeAggregate
from gradewise.core.grades import DEFAULT_GRADE_SCALE, GradeScale, to_grade_point, to_letter_grade

logger = logging.getLogger(__name__)

DEFAULT_MIN_FLOOR_SCORE = 60.0

# Absorbs float noise from splitting a category weight across its records.
_EPSILON = 1e-9


@dataclass(frozen=True)
class Subject:
    id: int
    name: str
    types: Mapping[AssessmentKind, AssessmentTypeAggregate] = field(default_factory=dict, hash=False)
    goal_percentage: float = 0.0
    semester_id: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "types", MappingProxyType(dict(self.types)))

    def ordered_types(self) -> Iterator[AssessmentTypeAggregate]:
        for kind in CATEGORY_PRIORITY:
            aggregate = self.types.get(kind)
            if aggregate is not None:
                yield aggregate


class GoalStatus(str, Enum):
    ACHIEVED = "achieved"
    REQUIRED = "required"
    INFEASIBLE = "infeasible"


@dataclass(frozen=True)
class GoalPlan:
    status: GoalStatus
    goal_percentage: float
    required: Dict[AssessmentKind, float] = field(default_factory=dict)
    additional_needed: float = 0.0
    remaining_weight: float = 0.0

    @property
    def achievable(self) -> bool:
        return self.status is not GoalStatus.INFEASIBLE


@dataclass(frozen=True)
class SubjectResult:
    percentage: float
    letter_grade: str
    gpa: float
    max_possible: float
    plan: GoalPlan


class SubjectGradeEngine:
    """Percentage, letter grade, GPA and goal planning for one subject snapshot."""

    def __init__(
        self,
        subject: Subject,
        *,
        scale: GradeScale = DEFAULT_GRADE_SCALE,
        min_floor_score: float = DEFAULT_MIN_FLOOR_SCORE,
    ) -> None:
        self.subject = subject
        self.scale = scale
        self.min_floor_score = min_floor_score

    def _weighted_types(self) -> List[AssessmentTypeAggregate]:
        return [aggregate for aggregate in self.subject.ordered_types() if aggregate.weight > 0]

    def overall_percentage(self) -> float:
        total_contribution = 0.0
        total_weight = 0.0
        for aggregate in self._weighted_types():
            contribution = aggregate.weighted_contribution()
            logger.debug(
                "%s: %s weight=%s average=%s contribution=%s",
                self.subject.name,
                aggregate.kind.value,
                aggregate.weight,
                aggregate.average_score(),
                contribution,
            )
            total_contribution += contribution
            total_weight += aggregate.weight
        if total_weight <= 0:
            return 0.0
        return (total_contribution / total_weight) * 100.0

    def letter_grade(self) -> str:
        return to_letter_grade(self.overall_percentage(), self.scale)

    def gpa(self) -> float:
        return to_grade_point(self.letter_grade(), self.scale)

    def max_possible_score(self) -> float:
        points = 0.0
        total_weight = 0.0
        for aggregate in self._weighted_types():
            total_weight += aggregate.weight
            points += aggregate.earned_points() + aggregate.remaining_weight()
        if total_weight <= 0:
            return 0.0
        return (points / total_weight) * 100.0

    def plan_goal(self, goal_percentage: Optional[float] = None) -> GoalPlan:
        goal = self.subject.goal_percentage if goal_percentage is None else goal_percentage

        current_earned = 0.0
        total_weight = 0.0
        open_weights: Dict[AssessmentKind, float] = {}
        open_counts: Dict[AssessmentKind, int] = {}
        for aggregate in self._weighted_types():
            total_weight += aggregate.weight
            current_earned += aggregate.earned_points()
            remaining = aggregate.remaining_weight()
            if remaining > 0:
                open_weights[aggregate.kind] = remaining
                open_counts[aggregate.kind] = aggregate.remaining_count()

        total_remaining = sum(open_weights.values())
        if total_weight <= 0:
            return GoalPlan(GoalStatus.INFEASIBLE, goal)

        additional = (goal / 100.0) * total_weight - current_earned
        logger.debug(
            "%s: goal=%s earned=%s needed=%s open=%s",
            self.subject.name,
            goal,
            current_earned,
            additional,
            total_remaining,
        )
        if additional <= 0:
            return GoalPlan(GoalStatus.ACHIEVED, goal, {}, additional, total_remaining)
        if total_remaining <= 0 or additional > total_remaining + _EPSILON:
            return GoalPlan(GoalStatus.INFEASIBLE, goal, {}, additional, total_remaining)

        required = self._allocate(additional, total_remaining, open_weights, open_counts)
        return GoalPlan(GoalStatus.REQUIRED, goal, required, additional, total_remaining)

    def _allocate(
        self,
        additional: float,
        total_remaining: float,
        open_weights: Dict[AssessmentKind, float],
        open_counts: Dict[AssessmentKind, int],
    ) -> Dict[AssessmentKind, float]:
        # Highest weight per outstanding item first; ties go to category priority.
        order = sorted(
            open_weights,
            key=lambda kind: (-(open_weights[kind] / open_counts[kind]), kind.priority),
        )

        allocated: Dict[AssessmentKind, float] = {}
        still_needed = additional
        for kind in order:
            weight = open_weights[kind]
            if weight >= still_needed:
                allocated[kind] = (still_needed / weight) * 100.0
                for other in order:
                    if other not in allocated:
                        allocated[other] = self.min_floor_score
                still_needed = 0.0
                break
            allocated[kind] = 100.0
            still_needed -= weight
            logger.debug("%s: maxing %s, %s points still needed", self.subject.name, kind.value, still_needed)

        if still_needed > _EPSILON:
            uniform = (additional / total_remaining) * 100.0
            allocated = {kind: uniform for kind in order}

        return {kind: allocated[kind] for kind in CATEGORY_PRIORITY if kind in allocated}

    def required_scores(self, goal_percentage: Optional[float] = None) -> Dict[AssessmentKind, float]:
        return self.plan_goal(goal_percentage).required

    def is_goal_achievable(self, goal_percentage: Optional[float] = None) -> bool:
        return self.plan_goal(goal_percentage).achievable

    def evaluate(self, goal_percentage: Optional[float] = None) -> SubjectResult:
        percentage = self.overall_percentage()
        letter = to_letter_grade(percentage, self.scale)
        return SubjectResult(
            percentage=percentage,
            letter_grade=letter,
            gpa=to_grade_point(letter, self.scale),
            max_possible=self.max_possible_score(),
            plan=self.plan_goal(goal_percentage),
        )
