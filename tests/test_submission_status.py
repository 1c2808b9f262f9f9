"""
Tests for the written-submission status machine.
"""

import pytest

from exam_service.core.exceptions import InvalidStatusTransition
from exam_service.schemas.submission import SubmissionStatus, WrittenSubmission
from exam_service.services import submission_status

S = SubmissionStatus

FORWARD_PATH = [S.OCR_PROCESSING, S.EVALUATING, S.COMPLETED]


def _submission(status=S.PENDING_EVALUATION) -> WrittenSubmission:
    return WrittenSubmission(submission_id="w1", exam_id="e1", student_id="s1", status=status)


class TestTransitions:
    def test_happy_path_records_timestamps(self):
        submission = _submission()
        for status in FORWARD_PATH:
            submission_status.transition(submission, status)

        assert submission.status == S.COMPLETED
        assert submission.ocr_started_at is not None
        assert submission.evaluation_started_at is not None
        assert submission.evaluated_at is not None

    @pytest.mark.parametrize("status", [S.PENDING_EVALUATION, S.OCR_PROCESSING, S.EVALUATING])
    def test_failed_reachable_from_every_non_terminal_state(self, status):
        submission = _submission(status)

        submission_status.transition(submission, S.FAILED, error_message="OCR down")

        assert submission.status == S.FAILED
        assert submission.error_message == "OCR down"

    @pytest.mark.parametrize("terminal", [S.COMPLETED, S.FAILED])
    @pytest.mark.parametrize("target", list(SubmissionStatus))
    def test_terminal_states_accept_nothing(self, terminal, target):
        with pytest.raises(InvalidStatusTransition):
            submission_status.transition(_submission(terminal), target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (S.EVALUATING, S.OCR_PROCESSING),
            (S.OCR_PROCESSING, S.PENDING_EVALUATION),
            (S.PENDING_EVALUATION, S.EVALUATING),
            (S.PENDING_EVALUATION, S.COMPLETED),
        ],
    )
    def test_no_regression_or_skipping(self, current, target):
        submission = _submission(current)
        with pytest.raises(InvalidStatusTransition):
            submission_status.transition(submission, target)
        assert submission.status == current


class TestDescribe:
    def test_pending(self):
        response = submission_status.describe(_submission())

        assert response.status == S.PENDING_EVALUATION
        assert response.poll_interval_seconds > 0
        assert not response.is_complete and not response.is_error

    def test_failed_carries_error(self):
        submission = _submission(S.EVALUATING)
        submission_status.transition(submission, S.FAILED, error_message="LLM quota exceeded")

        response = submission_status.describe(submission)

        assert response.is_error
        assert response.error_message == "LLM quota exceeded"
        assert response.poll_interval_seconds == 0
