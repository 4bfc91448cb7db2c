import os
import tempfile
import unittest

from fastapi.testclient import TestClient

from gradewise.app import app, get_gradebook
from gradewise.core.assessments import AssessmentKind
from gradewise.services.gradebook_service import GradebookService

from test_schemas import subject_body

USER = {"x-user-id": "student-1"}
OTHER_USER = {"x-user-id": "student-2"}


class StatelessEndpointTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_evaluate_subject(self):
        body = self.client.post("/evaluate/subject", json=subject_body()).json()
        self.assertAlmostEqual(body["percentage"], 13.5)
        self.assertEqual(body["letter_grade"], "F")
        self.assertEqual(body["total_weight"], 100)
        self.assertEqual(body["goal"]["status"], "required")
        self.assertEqual(set(body["goal"]["required"]), {"assignment", "final_exam"})

    def test_invalid_score_rejected(self):
        payload = subject_body()
        payload["types"][0]["records"][0]["score"] = -1
        self.assertEqual(self.client.post("/evaluate/subject", json=payload).status_code, 422)

    def test_evaluate_semester(self):
        body = self.client.post("/evaluate/semester", json={"name": "Fall", "subjects": [subject_body()]}).json()
        self.assertEqual(body["gpa"], 0.0)
        self.assertEqual(len(body["subjects"]), 1)

    def test_evaluate_program(self):
        body = self.client.post(
            "/evaluate/program", json={"completed_gpas": [3.0, 3.5], "goal_gpa": 3.5}
        ).json()
        self.assertAlmostEqual(body["current"], 3.25)
        self.assertAlmostEqual(body["projections"]["best"], 3.8125)
        self.assertAlmostEqual(body["goal"]["required_future_gpa"], (28 - 6.5) / 6)


class StoreEndpointTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store = GradebookService(os.path.join(self.tmp.name, "api.db"))
        app.dependency_overrides[get_gradebook] = lambda: self.store
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.store.close()
        self.tmp.cleanup()

    def _semester(self):
        return self.client.post("/semesters", json={"name": "Fall 2026"}, headers=USER).json()["id"]

    def _subject(self, semester_id, name="Art"):
        return self.client.post(
            f"/semesters/{semester_id}/subjects",
            json={"name": name, "config": {"final_project": {"weight": 100}}},
            headers=USER,
        ).json()["id"]

    def test_owner_header_required(self):
        self.assertEqual(self.client.post("/semesters", json={"name": "Fall"}).status_code, 401)
        self.assertEqual(self.client.get("/semesters").status_code, 401)

    def test_owner_header_required_on_every_store_route(self):
        semester_id = self._semester()
        subject_id = self._subject(semester_id)
        record_id = self.store.load_subject("student-1", subject_id).types[AssessmentKind.FINAL_PROJECT].records[0].id
        config = {"final_exam": {"weight": 100}}

        self.assertEqual(
            self.client.post(f"/semesters/{semester_id}/subjects", json={"name": "B", "config": config}).status_code,
            401,
        )
        self.assertEqual(self.client.patch(f"/assessments/{record_id}", json={"score": 50}).status_code, 401)
        self.assertEqual(self.client.put(f"/subjects/{subject_id}/goal", json={"goal_percentage": 70}).status_code, 401)
        self.assertEqual(self.client.get(f"/subjects/{subject_id}/report").status_code, 401)
        self.assertEqual(self.client.get(f"/semesters/{semester_id}/report").status_code, 401)
        self.assertEqual(self.client.delete(f"/subjects/{subject_id}").status_code, 401)
        self.assertEqual(self.client.delete(f"/semesters/{semester_id}").status_code, 401)
        self.assertEqual(self.client.get("/program/report").status_code, 401)
        self.assertEqual(len(self.store.load_semester("student-1", semester_id).subjects), 1)

    def test_other_owner_gets_not_found(self):
        semester_id = self._semester()
        subject_id = self._subject(semester_id)
        record_id = self.store.load_subject("student-1", subject_id).types[AssessmentKind.FINAL_PROJECT].records[0].id
        config = {"final_exam": {"weight": 100}}

        response = self.client.post(
            f"/semesters/{semester_id}/subjects", json={"name": "B", "config": config}, headers=OTHER_USER
        )
        self.assertEqual(response.status_code, 404)
        response = self.client.patch(f"/assessments/{record_id}", json={"score": 50}, headers=OTHER_USER)
        self.assertEqual(response.status_code, 404)
        response = self.client.put(f"/subjects/{subject_id}/goal", json={"goal_percentage": 70}, headers=OTHER_USER)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.client.get(f"/subjects/{subject_id}/report", headers=OTHER_USER).status_code, 404)
        self.assertEqual(self.client.get(f"/semesters/{semester_id}/report", headers=OTHER_USER).status_code, 404)
        self.assertEqual(self.client.delete(f"/subjects/{subject_id}", headers=OTHER_USER).status_code, 404)
        self.assertEqual(self.client.delete(f"/semesters/{semester_id}", headers=OTHER_USER).status_code, 404)
        self.assertEqual(self.client.get("/program/report", headers=OTHER_USER).json()["semesters"], [])

        subject = self.store.load_subject("student-1", subject_id)
        self.assertEqual(subject.goal_percentage, 0)
        self.assertFalse(subject.types[AssessmentKind.FINAL_PROJECT].records[0].is_final)

    def test_grade_flow(self):
        semester_id = self._semester()
        response = self.client.post(
            f"/semesters/{semester_id}/subjects",
            json={
                "name": "Statistics",
                "goal_percentage": 80,
                "config": {"quiz": {"count": 2, "weight": 40}, "final_exam": {"weight": 60}},
            },
            headers=USER,
        )
        subject_id = response.json()["id"]
        quizzes = self.store.load_subject("student-1", subject_id).types[AssessmentKind.QUIZ]
        for record in quizzes.records:
            response = self.client.patch(f"/assessments/{record.id}", json={"score": 75}, headers=USER)
            self.assertEqual(response.status_code, 200)

        report = self.client.get(f"/subjects/{subject_id}/report", headers=USER).json()
        self.assertAlmostEqual(report["percentage"], 30.0)
        self.assertAlmostEqual(report["max_possible"], 90.0)
        self.assertEqual(list(report["goal"]["required"]), ["final_exam"])
        self.assertAlmostEqual(report["goal"]["required"]["final_exam"], 100 * 50 / 60)
        self.assertEqual(report["analytics"]["pending"][0]["label"], "Final Exam")

        semester = self.client.get(f"/semesters/{semester_id}/report", headers=USER).json()
        self.assertEqual(semester["gpa"], 0.0)
        program = self.client.get("/program/report", params={"goal_gpa": 3.0}, headers=USER).json()
        self.assertEqual(program["completed"], 0)
        self.assertEqual(program["goal"]["required_future_gpa"], 3.0)

    def test_business_rule_violation(self):
        semester_id = self._semester()
        for name in ("A", "B"):
            self._subject(semester_id, name)
        response = self.client.post(
            f"/semesters/{semester_id}/subjects",
            json={"name": "C", "config": {"final_exam": {"weight": 100}}},
            headers=USER,
        )
        self.assertEqual(response.status_code, 400)

    def test_missing_subject(self):
        self.assertEqual(self.client.get("/subjects/404/report", headers=USER).status_code, 404)
        self.assertEqual(self.client.patch("/assessments/9", json={"score": 50}, headers=USER).status_code, 404)

    def test_out_of_range_score(self):
        self.assertEqual(self.client.patch("/assessments/1", json={"score": 101}, headers=USER).status_code, 422)

    def test_set_goal_and_delete(self):
        semester_id = self._semester()
        subject_id = self._subject(semester_id)
        response = self.client.put(f"/subjects/{subject_id}/goal", json={"goal_percentage": 70}, headers=USER)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.store.load_subject("student-1", subject_id).goal_percentage, 70)
        self.assertEqual(self.client.delete(f"/subjects/{subject_id}", headers=USER).status_code, 200)
        self.assertEqual(self.client.get(f"/subjects/{subject_id}/report", headers=USER).status_code, 404)

    def test_delete_semester(self):
        semester_id = self._semester()
        self._subject(semester_id)
        self.assertEqual(self.client.delete(f"/semesters/{semester_id}", headers=USER).status_code, 200)
        self.assertEqual(self.client.get("/semesters", headers=USER).json(), [])


if __name__ == "__main__":
    unittest.main()
