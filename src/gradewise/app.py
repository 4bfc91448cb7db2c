import logging
from dataclasses import asdict
from typing import Dict, Iterator, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware

from gradewise.config.settings import settings
from gradewise.core import analytics
from gradewise.core.gpa import ProgramGPAProjector, Semester, SemesterGradeEngine
from gradewise.core.subject import GoalPlan, Subject, SubjectGradeEngine
from gradewise.logging_config import setup_logging
from gradewise.schemas import (
    AssessmentUpdatePayload,
    GoalPayload,
    ProgramPayload,
    SemesterCreatePayload,
    SemesterPayload,
    SubjectCreatePayload,
    SubjectPayload,
)
from gradewise.services.gradebook_service import GradebookService, GradebookServiceError, RecordNotFoundError

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Gradewise API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_gradebook() -> Iterator[GradebookService]:
    store = GradebookService.from_settings()
    try:
        yield store
    finally:
        store.close()


def _required_uid(x_user_id: Optional[str]) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing x-user-id header")
    return x_user_id


def _store_error(exc: GradebookServiceError) -> HTTPException:
    logger.warning("Rejected request: %s", exc)
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _subject_engine(subject: Subject) -> SubjectGradeEngine:
    return SubjectGradeEngine(subject, min_floor_score=settings.min_floor_score)


def _plan_dict(plan: GoalPlan) -> Dict:
    return {
        "status": plan.status.value,
        "goal_percentage": plan.goal_percentage,
        "required": {kind.value: score for kind, score in plan.required.items()},
        "additional_needed": plan.additional_needed,
        "remaining_weight": plan.remaining_weight,
    }


def _subject_summary(subject: Subject, goal_percentage: Optional[float] = None) -> Dict:
    result = _subject_engine(subject).evaluate(goal_percentage)
    return {
        "id": subject.id,
        "name": subject.name,
        "percentage": result.percentage,
        "letter_grade": result.letter_grade,
        "gpa": result.gpa,
        "max_possible": result.max_possible,
        "goal": _plan_dict(result.plan),
    }


def _subject_report(subject: Subject) -> Dict:
    report = _subject_summary(subject)
    target = analytics.next_grade_target(subject)
    weakest = analytics.weakest_kind(subject)
    report["analytics"] = {
        "distribution": {
            kind.value: counts for kind, counts in analytics.grade_distribution(subject).items()
        },
        "trend": analytics.grade_trend(subject),
        "statistics": asdict(
            analytics.score_statistics(
                record.score for aggregate in subject.ordered_types() for record in aggregate.records
            )
        ),
        **analytics.strengths_and_weaknesses(subject),
        "pending": [
            {"kind": item.kind.value, "label": item.label, "score": item.score, "weight": item.weight}
            for item in analytics.pending_by_impact(subject)
        ],
        "next_grade": None
        if target is None
        else {**asdict(target), "reachable": target.reachable},
        "weakest": None if weakest is None else {"kind": weakest[0].value, "average": weakest[1]},
    }
    return report


def _semester_summary(semester: Semester) -> Dict:
    engine = SemesterGradeEngine(semester, min_floor_score=settings.min_floor_score)
    return {
        "id": semester.id,
        "name": semester.name,
        "gpa": engine.gpa(),
        "subjects": [_subject_summary(subject) for subject in semester.subjects],
    }


def _program_summary(projector: ProgramGPAProjector, goal_gpa: Optional[float] = None) -> Dict:
    summary: Dict = {
        "completed": projector.completed,
        "total_semesters": projector.total_semesters,
        "current": projector.current_gpa(),
        "projections": asdict(projector.projections()),
    }
    if goal_gpa is not None:
        summary["goal"] = {
            "goal_gpa": goal_gpa,
            "required_future_gpa": projector.required_future_gpa(goal_gpa),
            "difficulty": projector.difficulty(goal_gpa),
        }
    return summary


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/evaluate/subject")
def evaluate_subject(payload: SubjectPayload) -> Dict:
    summary = _subject_summary(payload.to_snapshot())
    summary["total_weight"] = payload.total_weight
    return summary


@app.post("/evaluate/semester")
def evaluate_semester(payload: SemesterPayload) -> Dict:
    return _semester_summary(payload.to_snapshot())


@app.post("/evaluate/program")
def evaluate_program(payload: ProgramPayload) -> Dict:
    return _program_summary(payload.to_projector(), payload.goal_gpa)


@app.post("/semesters")
def create_semester(
    payload: SemesterCreatePayload,
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict[str, int]:
    uid = _required_uid(x_user_id)
    try:
        return {"id": store.create_semester(uid, payload.name)}
    except GradebookServiceError as exc:
        raise _store_error(exc) from exc


@app.get("/semesters")
def list_semesters(
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> List[Dict]:
    uid = _required_uid(x_user_id)
    return store.list_semesters(uid)


@app.delete("/semesters/{semester_id}")
def delete_semester(
    semester_id: int,
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        store.delete_semester(uid, semester_id)
        return {"status": "deleted"}
    except GradebookServiceError as exc:
        raise _store_error(exc) from exc


@app.post("/semesters/{semester_id}/subjects")
def create_subject(
    semester_id: int,
    payload: SubjectCreatePayload,
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict[str, int]:
    uid = _required_uid(x_user_id)
    config = {
        kind: (item.count, item.weight) if kind.counted else item.weight for kind, item in payload.config.items()
    }
    try:
        subject_id = store.create_subject(uid, semester_id, payload.name, config, payload.goal_percentage)
        return {"id": subject_id}
    except GradebookServiceError as exc:
        raise _store_error(exc) from exc


@app.patch("/assessments/{assessment_id}")
def update_assessment(
    assessment_id: int,
    payload: AssessmentUpdatePayload,
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        store.update_assessment(uid, assessment_id, payload.score, payload.is_final)
        return {"status": "updated"}
    except GradebookServiceError as exc:
        raise _store_error(exc) from exc


@app.put("/subjects/{subject_id}/goal")
def set_goal(
    subject_id: int,
    payload: GoalPayload,
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        store.set_goal(uid, subject_id, payload.goal_percentage)
        return {"status": "updated"}
    except GradebookServiceError as exc:
        raise _store_error(exc) from exc


@app.get("/subjects/{subject_id}/report")
def subject_report(
    subject_id: int,
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        return _subject_report(store.load_subject(uid, subject_id))
    except GradebookServiceError as exc:
        raise _store_error(exc) from exc


@app.delete("/subjects/{subject_id}")
def delete_subject(
    subject_id: int,
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        store.delete_subject(uid, subject_id)
        return {"status": "deleted"}
    except GradebookServiceError as exc:
        raise _store_error(exc) from exc


@app.get("/semesters/{semester_id}/report")
def semester_report(
    semester_id: int,
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        return _semester_summary(store.load_semester(uid, semester_id))
    except GradebookServiceError as exc:
        raise _store_error(exc) from exc


@app.get("/program/report")
def program_report(
    goal_gpa: Optional[float] = Query(default=None, ge=0, le=4),
    x_user_id: Optional[str] = Header(default=None),
    store: GradebookService = Depends(get_gradebook),
) -> Dict:
    uid = _required_uid(x_user_id)
    semesters = store.load_program(uid)
    projector = ProgramGPAProjector.from_semesters(semesters, settings.total_semesters)
    summary = _program_summary(projector, goal_gpa)
    summary["semesters"] = [_semester_summary(semester) for semester in semesters]
    return summary
