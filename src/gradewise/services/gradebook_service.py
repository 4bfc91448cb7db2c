from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Dict, List, Mapping, Tuple, Union

from gradewise.config.settings import settings
from gradewise.core.assessments import CATEGORY_PRIORITY, AssessmentKind, AssessmentRecord, AssessmentTypeAggregate
from gradewise.core.gpa import Semester
from gradewise.core.subject import Subject

logger = logging.getLogger(__name__)

# Counted kinds take (count, weight); singleton kinds take a bare weight.
TypeConfig = Mapping[AssessmentKind, Union[float, Tuple[int, float]]]


class GradebookServiceError(Exception):
    pass


class RecordNotFoundError(GradebookServiceError):
    pass


class GradebookService:
    def __init__(
        self,
        db_path: str = settings.db_path,
        *,
        max_semesters: int = settings.max_semesters,
        max_subjects_per_semester: int = settings.max_subjects_per_semester,
    ) -> None:
        self.db_path = db_path
        self.max_semesters = max_semesters
        self.max_subjects_per_semester = max_subjects_per_semester
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    @classmethod
    def from_settings(cls) -> "GradebookService":
        return cls(settings.db_path)

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.executescript(
            """
            CREATE TABLE IF NOT EXISTS semesters (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              owner_id TEXT NOT NULL,
              name TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS subjects (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              semester_id INTEGER NOT NULL,
              name TEXT NOT NULL,
              goal_percentage REAL NOT NULL DEFAULT 0,
              FOREIGN KEY(semester_id) REFERENCES semesters(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS assessment_types (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              subject_id INTEGER NOT NULL,
              kind TEXT NOT NULL,
              count INTEGER NOT NULL DEFAULT 0,
              weight REAL NOT NULL,
              UNIQUE(subject_id, kind),
              FOREIGN KEY(subject_id) REFERENCES subjects(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS assessments (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              type_id INTEGER NOT NULL,
              number INTEGER NOT NULL,
              score REAL NOT NULL DEFAULT 0,
              is_final INTEGER NOT NULL DEFAULT 0,
              FOREIGN KEY(type_id) REFERENCES assessment_types(id) ON DELETE CASCADE
            );
            """
        )
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def create_semester(self, owner_id: str, name: str) -> int:
        if not name or not name.strip():
            raise GradebookServiceError("Semester name cannot be empty")
        count = self.conn.execute("SELECT COUNT(*) FROM semesters WHERE owner_id=?", (owner_id,)).fetchone()[0]
        if count >= self.max_semesters:
            raise GradebookServiceError(f"Maximum number of semesters ({self.max_semesters}) reached")

        cur = self.conn.execute("INSERT INTO semesters(owner_id, name) VALUES(?, ?)", (owner_id, name.strip()))
        self.conn.commit()
        logger.info("Created semester %s for %s", cur.lastrowid, owner_id)
        return int(cur.lastrowid)

    def list_semesters(self, owner_id: str) -> List[Dict]:
        rows = self.conn.execute("SELECT id, name FROM semesters WHERE owner_id=? ORDER BY id", (owner_id,))
        return [dict(row) for row in rows.fetchall()]

    def delete_semester(self, owner_id: str, semester_id: int) -> None:
        self._owned_semester(owner_id, semester_id)
        self.conn.execute("DELETE FROM semesters WHERE id=?", (semester_id,))
        self.conn.commit()
        logger.info("Deleted semester %s", semester_id)

    def create_subject(
        self,
        owner_id: str,
        semester_id: int,
        name: str,
        config: TypeConfig,
        goal_percentage: float = 0.0,
    ) -> int:
        if not name or not name.strip():
            raise GradebookServiceError("Subject name cannot be empty")
        if goal_percentage < 0:
            raise GradebookServiceError("Goal percentage cannot be negative")
        self._owned_semester(owner_id, semester_id)
        count = self.conn.execute("SELECT COUNT(*) FROM subjects WHERE semester_id=?", (semester_id,)).fetchone()[0]
        if count >= self.max_subjects_per_semester:
            raise GradebookServiceError(
                f"Maximum number of subjects ({self.max_subjects_per_semester}) reached for this semester"
            )

        planned = [(kind, *self._parse_config(kind, config[kind])) for kind in CATEGORY_PRIORITY if kind in config]

        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO subjects(semester_id, name, goal_percentage) VALUES(?, ?, ?)",
                (semester_id, name.strip(), goal_percentage),
            )
            subject_id = int(cur.lastrowid)
            for kind, item_count, weight in planned:
                if weight <= 0:
                    continue
                type_cur = self.conn.execute(
                    "INSERT INTO assessment_types(subject_id, kind, count, weight) VALUES(?, ?, ?, ?)",
                    (subject_id, kind.value, item_count, weight),
                )
                numbers = range(1, item_count + 1) if kind.counted else (0,)
                self.conn.executemany(
                    "INSERT INTO assessments(type_id, number) VALUES(?, ?)",
                    [(type_cur.lastrowid, number) for number in numbers],
                )

        logger.info("Created subject %s in semester %s", subject_id, semester_id)
        return subject_id

    @staticmethod
    def _parse_config(kind: AssessmentKind, value: Union[float, Tuple[int, float]]) -> Tuple[int, float]:
        if kind.counted:
            if not isinstance(value, (tuple, list)) or len(value) != 2:
                raise GradebookServiceError(f"{kind.display_name} needs a (count, weight) pair")
            item_count, weight = int(value[0]), float(value[1])
        else:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise GradebookServiceError(f"{kind.display_name} takes a single weight")
            item_count, weight = 0, float(value)
        if item_count < 0:
            raise GradebookServiceError(f"{kind.display_name} count cannot be negative")
        if weight < 0 or weight > 100:
            raise GradebookServiceError(f"{kind.display_name} weight must be between 0 and 100")
        return item_count, weight

    def update_assessment(self, owner_id: str, assessment_id: int, score: float, is_final: bool = True) -> None:
        if score < 0 or score > 100:
            raise GradebookServiceError("Score must be between 0 and 100")
        self._owned_assessment(owner_id, assessment_id)
        self.conn.execute(
            "UPDATE assessments SET score=?, is_final=? WHERE id=?",
            (score, 1 if is_final else 0, assessment_id),
        )
        self.conn.commit()

    def set_goal(self, owner_id: str, subject_id: int, goal_percentage: float) -> None:
        if goal_percentage < 0:
            raise GradebookServiceError("Goal percentage cannot be negative")
        self._owned_subject(owner_id, subject_id)
        self.conn.execute("UPDATE subjects SET goal_percentage=? WHERE id=?", (goal_percentage, subject_id))
        self.conn.commit()

    def delete_subject(self, owner_id: str, subject_id: int) -> None:
        self._owned_subject(owner_id, subject_id)
        self.conn.execute("DELETE FROM subjects WHERE id=?", (subject_id,))
        self.conn.commit()
        logger.info("Deleted subject %s", subject_id)

    # Rows owned by someone else are reported exactly like missing rows.
    def _owned_semester(self, owner_id: str, semester_id: int) -> sqlite3.Row:
        row = self.conn.execute(
            "SELECT * FROM semesters WHERE id=? AND owner_id=?", (semester_id, owner_id)
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"Semester {semester_id} not found")
        return row

    def _owned_subject(self, owner_id: str, subject_id: int) -> sqlite3.Row:
        row = self.conn.execute(
            """SELECT s.* FROM subjects s JOIN semesters m ON m.id=s.semester_id
               WHERE s.id=? AND m.owner_id=?""",
            (subject_id, owner_id),
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"Subject {subject_id} not found")
        return row

    def _owned_assessment(self, owner_id: str, assessment_id: int) -> sqlite3.Row:
        row = self.conn.execute(
            """SELECT a.* FROM assessments a
               JOIN assessment_types t ON t.id=a.type_id
               JOIN subjects s ON s.id=t.subject_id
               JOIN semesters m ON m.id=s.semester_id
               WHERE a.id=? AND m.owner_id=?""",
            (assessment_id, owner_id),
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"Assessment {assessment_id} not found")
        return row

    def load_subject(self, owner_id: str, subject_id: int) -> Subject:
        return self._subject_from_row(self._owned_subject(owner_id, subject_id))

    def _subject_from_row(self, row: sqlite3.Row) -> Subject:
        types: Dict[AssessmentKind, AssessmentTypeAggregate] = {}
        type_rows = self.conn.execute("SELECT * FROM assessment_types WHERE subject_id=?", (row["id"],)).fetchall()
        for type_row in sorted(type_rows, key=lambda r: AssessmentKind(r["kind"]).priority):
            kind = AssessmentKind(type_row["kind"])
            records = tuple(
                AssessmentRecord(
                    id=int(record["id"]),
                    type_id=int(type_row["id"]),
                    sequence_number=int(record["number"]),
                    score=float(record["score"]),
                    is_final=bool(record["is_final"]),
                )
                for record in self.conn.execute(
                    "SELECT * FROM assessments WHERE type_id=? ORDER BY number, id", (type_row["id"],)
                )
            )
            types[kind] = AssessmentTypeAggregate(
                id=int(type_row["id"]),
                kind=kind,
                weight=float(type_row["weight"]),
                expected_count=int(type_row["count"]) if kind.counted else 1,
                records=records,
            )
        return Subject(
            id=int(row["id"]),
            name=row["name"],
            types=types,
            goal_percentage=float(row["goal_percentage"]),
            semester_id=int(row["semester_id"]),
        )

    def load_semester(self, owner_id: str, semester_id: int) -> Semester:
        row = self._owned_semester(owner_id, semester_id)
        subject_rows = self.conn.execute(
            "SELECT * FROM subjects WHERE semester_id=? ORDER BY id", (semester_id,)
        ).fetchall()
        return Semester(
            id=int(row["id"]),
            name=row["name"],
            subjects=tuple(self._subject_from_row(subject_row) for subject_row in subject_rows),
            owner_id=row["owner_id"],
        )

    def load_program(self, owner_id: str) -> List[Semester]:
        return [self.load_semester(owner_id, item["id"]) for item in self.list_semesters(owner_id)]
