"""
Round trips through the SQLAlchemy-backed stores.
"""

from datetime import datetime, timedelta, timezone

from conftest import EXAM_ID, STUDENT_ID, build_scenario_exam, scenario_rubric
from exam_service.schemas.evaluation import (
    ExtractedMcqAnswer,
    McqExtraction,
    SubjectiveEvaluationResult,
)
from exam_service.schemas.rubric import RubricStep
from exam_service.schemas.submission import McqAnswer, SubmissionStatus, WrittenSubmission
from exam_service.services import mcq_service, paper_service, result_service


class TestSqlExamStore:
    def test_store_and_get(self, sql_repos):
        exam = build_scenario_exam()
        sql_repos.exams.store(exam)

        loaded = sql_repos.exams.get(EXAM_ID)

        assert loaded == exam
        assert sql_repos.exams.exists(EXAM_ID)
        assert not sql_repos.exams.exists("other")
        assert sql_repos.exams.get("other") is None

    def test_store_replaces(self, sql_repos):
        exam = build_scenario_exam()
        sql_repos.exams.store(exam)
        exam.chapter = "Revised"
        sql_repos.exams.store(exam)

        assert sql_repos.exams.get(EXAM_ID).chapter == "Revised"
        assert len(sql_repos.exams.list_all()) == 1

    def test_store_exam_service_generates_rubrics(self, sql_repos):
        generated = paper_service.store_exam(sql_repos, build_scenario_exam())

        assert generated == 2
        assert [r.question_id for r in sql_repos.rubrics.list_for_exam(EXAM_ID)] == ["sub-1", "sub-2"]


class TestSqlRubricStore:
    def test_upsert(self, sql_repos):
        sql_repos.rubrics.save(scenario_rubric("sub-1"))
        replacement = scenario_rubric("sub-1")
        replacement.total_marks = 4
        replacement.steps = [
            RubricStep(step_number=1, description="Method", marks=2),
            RubricStep(step_number=2, description="Answer", marks=2),
        ]
        sql_repos.rubrics.save(replacement)

        rubrics = sql_repos.rubrics.list_for_exam(EXAM_ID)
        assert len(rubrics) == 1
        assert rubrics[0].total_marks == 4
        assert [s.marks for s in rubrics[0].steps] == [2, 2]

    def test_delete(self, sql_repos):
        sql_repos.rubrics.save(scenario_rubric("sub-1"))

        assert sql_repos.rubrics.delete(EXAM_ID, "sub-1") is True
        assert sql_repos.rubrics.delete(EXAM_ID, "sub-1") is False
        assert sql_repos.rubrics.get(EXAM_ID, "sub-1") is None


class TestSqlSubmissionStore:
    def test_mcq_resubmission_overwrites(self, sql_repos):
        sql_repos.exams.store(build_scenario_exam())
        mcq_service.submit_mcq(
            sql_repos,
            exam_id=EXAM_ID,
            student_id=STUDENT_ID,
            answers=[McqAnswer(question_id="mcq-1", selected_option="B")],
        )
        mcq_service.submit_mcq(
            sql_repos,
            exam_id=EXAM_ID,
            student_id=STUDENT_ID,
            answers=[McqAnswer(question_id="mcq-1", selected_option="A")],
        )

        stored = sql_repos.submissions.get_mcq_submission(EXAM_ID, STUDENT_ID)
        assert stored.score == 1
        assert stored.results[0].is_correct is True

    def test_sheet_evaluation_round_trip(self, sql_repos):
        exam = build_scenario_exam()
        extraction = McqExtraction(
            submission_id="w-1",
            exam_id=EXAM_ID,
            student_id=STUDENT_ID,
            extracted_answers=[ExtractedMcqAnswer(question_number=2, selected_option="B")],
        )
        sql_repos.submissions.save_sheet_evaluation(mcq_service.evaluate_sheet(exam, extraction))

        stored = sql_repos.submissions.get_sheet_evaluation(EXAM_ID, STUDENT_ID)
        assert stored.submission_id == "w-1"
        assert (stored.total_score, stored.total_marks) == (1, 5)
        assert [a.was_extracted for a in stored.answers] == [False, True, False, False, False]

    def test_written_listed_newest_first(self, sql_repos):
        now = datetime.now(timezone.utc)
        for offset, submission_id in [(2, "oldest"), (0, "newest"), (1, "middle")]:
            sql_repos.submissions.save_written(
                WrittenSubmission(
                    submission_id=submission_id,
                    exam_id=EXAM_ID,
                    student_id=STUDENT_ID,
                    submitted_at=now - timedelta(minutes=offset),
                )
            )

        listed = sql_repos.submissions.list_written(EXAM_ID, STUDENT_ID)

        assert [s.submission_id for s in listed] == ["newest", "middle", "oldest"]

    def test_written_status_round_trip(self, sql_repos):
        submission = WrittenSubmission(
            submission_id="w-1",
            exam_id=EXAM_ID,
            student_id=STUDENT_ID,
            file_paths=["uploads/a.jpg"],
        )
        sql_repos.submissions.save_written(submission)
        submission.status = SubmissionStatus.FAILED
        submission.error_message = "OCR down"
        sql_repos.submissions.save_written(submission)

        stored = sql_repos.submissions.get_written("w-1")
        assert stored.status == SubmissionStatus.FAILED
        assert stored.error_message == "OCR down"
        assert stored.file_paths == ["uploads/a.jpg"]

    def test_evaluations_replaced_in_order(self, sql_repos):
        first = [
            SubjectiveEvaluationResult(question_id="sub-1", question_number=6, earned_marks=1, max_marks=5),
        ]
        second = [
            SubjectiveEvaluationResult(question_id="sub-2", question_number=7, earned_marks=3, max_marks=5),
            SubjectiveEvaluationResult(question_id="sub-1", question_number=6, earned_marks=5, max_marks=5),
        ]
        sql_repos.submissions.save_evaluations("w-1", first)
        sql_repos.submissions.save_evaluations("w-1", second)

        stored = sql_repos.submissions.get_evaluations("w-1")
        assert [e.question_id for e in stored] == ["sub-2", "sub-1"]
        assert sum(e.earned_marks for e in stored) == 8

    def test_consolidated_result_from_sql(self, sql_repos):
        sql_repos.exams.store(build_scenario_exam())
        mcq_service.submit_mcq(
            sql_repos,
            exam_id=EXAM_ID,
            student_id=STUDENT_ID,
            answers=[McqAnswer(question_id=f"mcq-{n}", selected_option="A") for n in range(1, 6)],
        )

        result = result_service.build_consolidated_result(sql_repos, EXAM_ID, STUDENT_ID)

        assert (result.grand_score, result.grand_total_marks) == (2, 5)
        assert result.grade == "D"
        assert result.passed is True
