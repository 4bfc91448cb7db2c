from __future__ import annotations

from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from gradewise.core.assessments import AssessmentKind, AssessmentRecord, AssessmentTypeAggregate
from gradewise.core.gpa import DEFAULT_TOTAL_SEMESTERS, ProgramGPAProjector, Semester
from gradewise.core.subject import Subject

Score = Annotated[float, Field(ge=0, le=100)]
GPA = Annotated[float, Field(ge=0, le=4)]


class AssessmentRecordPayload(BaseModel):
    id: int = 0
    sequence_number: int = Field(default=0, ge=0)
    score: Score = 0.0
    is_final: bool = False

    def to_snapshot(self, type_id: int = 0) -> AssessmentRecord:
        return AssessmentRecord(
            id=self.id,
            type_id=type_id,
            sequence_number=self.sequence_number,
            score=self.score,
            is_final=self.is_final,
        )


class AssessmentTypePayload(BaseModel):
    id: int = 0
    kind: AssessmentKind
    weight: float = Field(ge=0, le=100)
    expected_count: int = Field(default=1, ge=0)
    records: List[AssessmentRecordPayload] = Field(default_factory=list)

    @model_validator(mode="after")
    def _singletons_hold_one_record(self) -> "AssessmentTypePayload":
        if not self.kind.counted and len(self.records) > 1:
            raise ValueError(f"{self.kind.display_name} takes a single record, got {len(self.records)}")
        return self

    def to_snapshot(self) -> AssessmentTypeAggregate:
        return AssessmentTypeAggregate(
            id=self.id,
            kind=self.kind,
            weight=self.weight,
            expected_count=self.expected_count if self.kind.counted else 1,
            records=tuple(record.to_snapshot(self.id) for record in self.records),
        )


class SubjectPayload(BaseModel):
    id: int = 0
    name: str = Field(min_length=1)
    types: List[AssessmentTypePayload] = Field(default_factory=list)
    goal_percentage: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def _kinds_are_unique(self) -> "SubjectPayload":
        seen = set()
        for item in self.types:
            if item.kind in seen:
                raise ValueError(f"Assessment type listed twice: {item.kind.value}")
            seen.add(item.kind)
        return self

    @property
    def total_weight(self) -> float:
        return sum(item.weight for item in self.types)

    def to_snapshot(self, semester_id: int = 0) -> Subject:
        return Subject(
            id=self.id,
            name=self.name,
            types={item.kind: item.to_snapshot() for item in self.types},
            goal_percentage=self.goal_percentage,
            semester_id=semester_id,
        )


class SemesterPayload(BaseModel):
    id: int = 0
    name: str = Field(min_length=1)
    subjects: List[SubjectPayload] = Field(default_factory=list)

    def to_snapshot(self, owner_id: str = "") -> Semester:
        return Semester(
            id=self.id,
            name=self.name,
            subjects=tuple(subject.to_snapshot(self.id) for subject in self.subjects),
            owner_id=owner_id,
        )


class ProgramPayload(BaseModel):
    completed_gpas: List[GPA] = Field(default_factory=list)
    total_semesters: int = Field(default=DEFAULT_TOTAL_SEMESTERS, ge=1)
    goal_gpa: Optional[GPA] = None

    def to_projector(self) -> ProgramGPAProjector:
        return ProgramGPAProjector(self.completed_gpas, self.total_semesters)


class SemesterCreatePayload(BaseModel):
    name: str = Field(min_length=1)


class TypeConfigPayload(BaseModel):
    count: int = Field(default=1, ge=0)
    weight: float = Field(ge=0, le=100)


class SubjectCreatePayload(BaseModel):
    name: str = Field(min_length=1)
    config: Dict[AssessmentKind, TypeConfigPayload] = Field(default_factory=dict)
    goal_percentage: float = Field(default=0.0, ge=0)


class AssessmentUpdatePayload(BaseModel):
    score: Score
    is_final: bool = True


class GoalPayload(BaseModel):
    goal_percentage: float = Field(ge=0)
