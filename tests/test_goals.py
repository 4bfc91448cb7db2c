import unittest

from gradewise.core.assessments import AssessmentKind, AssessmentTypeAggregate
from gradewise.core.subject import GoalStatus, SubjectGradeEngine

from test_grading import make_subject, make_type

A = AssessmentKind.ASSIGNMENT
Q = AssessmentKind.QUIZ
MID = AssessmentKind.MIDTERM
EXAM = AssessmentKind.FINAL_EXAM
PROJECT = AssessmentKind.FINAL_PROJECT


class RequiredScoresTests(unittest.TestCase):
    def assertScores(self, actual, expected):
        self.assertEqual(list(actual), list(expected))
        for kind, score in expected.items():
            self.assertAlmostEqual(actual[kind], score, places=6)

    def test_highest_leverage_category_maxed_first(self):
        subject = make_subject(make_type(A, 30, (0, False)), make_type(EXAM, 70, (0, False)))
        plan = SubjectGradeEngine(subject).plan_goal(80)
        self.assertIs(plan.status, GoalStatus.REQUIRED)
        self.assertScores(plan.required, {A: 100 * 10 / 30, EXAM: 100.0})

    def test_goal_beyond_remaining_weight_is_infeasible(self):
        engine = SubjectGradeEngine(make_subject(make_type(MID, 100, (0, False))))
        self.assertEqual(engine.required_scores(150), {})
        self.assertIs(engine.plan_goal(150).status, GoalStatus.INFEASIBLE)
        self.assertFalse(engine.is_goal_achievable(150))

    def test_goal_already_met_is_reported_as_achieved(self):
        engine = SubjectGradeEngine(make_subject(make_type(MID, 100, (95, True))))
        plan = engine.plan_goal(90)
        self.assertIs(plan.status, GoalStatus.ACHIEVED)
        self.assertEqual(plan.required, {})
        self.assertTrue(engine.is_goal_achievable(90))

    def test_everything_graded_below_goal(self):
        engine = SubjectGradeEngine(make_subject(make_type(MID, 100, (70, True))))
        self.assertIs(engine.plan_goal(90).status, GoalStatus.INFEASIBLE)

    def test_other_categories_get_floor_score(self):
        subject = make_subject(
            make_type(A, 20, (100, True), (100, True), (0, False), (0, False)),
            make_type(Q, 20, (0, False), (0, False)),
            make_type(EXAM, 60, (0, False)),
        )
        engine = SubjectGradeEngine(subject)
        self.assertScores(engine.required_scores(50), {A: 60.0, Q: 60.0, EXAM: 100 * 40 / 60})

    def test_exact_fit_stops_the_pass(self):
        subject = make_subject(
            make_type(A, 20, (100, True), (100, True), (0, False), (0, False)),
            make_type(Q, 20, (0, False), (0, False)),
            make_type(EXAM, 60, (0, False)),
        )
        self.assertScores(SubjectGradeEngine(subject).required_scores(70), {A: 60.0, Q: 60.0, EXAM: 100.0})

    def test_ties_follow_category_priority(self):
        subject = make_subject(make_type(Q, 50, (0, False)), make_type(A, 50, (0, False)))
        self.assertScores(SubjectGradeEngine(subject).required_scores(70), {A: 100.0, Q: 40.0})

    def test_category_without_records_is_fully_open(self):
        subject = make_subject(
            make_type(MID, 60, (50, True)),
            AssessmentTypeAggregate(kind=PROJECT, weight=40),
        )
        self.assertScores(SubjectGradeEngine(subject).required_scores(60), {PROJECT: 75.0})

    def test_floor_score_is_configurable(self):
        subject = make_subject(make_type(A, 30, (0, False)), make_type(EXAM, 70, (0, False)))
        engine = SubjectGradeEngine(subject, min_floor_score=70.0)
        self.assertScores(engine.required_scores(35), {A: 70.0, EXAM: 50.0})

    def test_default_goal_comes_from_subject(self):
        subject = make_subject(make_type(A, 30, (0, False)), make_type(EXAM, 70, (0, False)), goal=80)
        engine = SubjectGradeEngine(subject)
        self.assertEqual(engine.required_scores(), engine.required_scores(80))

    def test_no_weighted_categories(self):
        engine = SubjectGradeEngine(make_subject(make_type(Q, 0, (0, False))))
        self.assertIs(engine.plan_goal(50).status, GoalStatus.INFEASIBLE)

    def test_full_marks_goal_survives_uneven_split(self):
        subject = make_subject(make_type(A, 100, (0, False), (0, False), (0, False)))
        self.assertScores(SubjectGradeEngine(subject).required_scores(100), {A: 100.0})

    def test_repeated_plans_identical(self):
        subject = make_subject(
            make_type(A, 25, (0, False), (0, False)),
            make_type(Q, 25, (0, False), (0, False)),
            make_type(EXAM, 50, (0, False)),
        )
        engine = SubjectGradeEngine(subject)
        self.assertEqual(engine.plan_goal(85), engine.plan_goal(85))


if __name__ == "__main__":
    unittest.main()
