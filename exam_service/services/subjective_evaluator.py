# exam_service/services/subjective_evaluator.py
"""
Rubric based evaluation of subjective (written) answers with an LLM.

For every subjective question the student's answer is cut out of the sheet's OCR
text, sent to the model together with the question, the rubric (when one exists)
and the model answer, and the JSON reply is parsed into a
SubjectiveEvaluationResult. One failing question never stops the others.
"""
import logging
import re

from pydantic import ValidationError as PydanticValidationError

from exam_service.core.config import settings
from exam_service.core.exceptions import EvaluationParseError, ExamServiceError
from exam_service.repositories.base import RubricStore
from exam_service.schemas.evaluation import SubjectiveEvaluationResult
from exam_service.schemas.exam import Exam, ScoredQuestion
from exam_service.schemas.rubric import Rubric
from exam_service.services import math_normalizer
from exam_service.services.llm_client import LLMClient, parse_json_response

logger = logging.getLogger(__name__)

ERROR_FEEDBACK = "Error during evaluation. Please contact support."
NO_ANSWER_FEEDBACK = "No answer found for this question."

_OUTPUT_SCHEMA = """Output JSON only with this schema:
{
  "earnedMarks": number,
  "maxMarks": number,
  "isFullyCorrect": boolean,
  "expectedAnswer": "string (complete worked solution)",
  "studentAnswerEcho": "string (what the student wrote, cleaned up)",
  "stepAnalysis": [
    {
      "step": number,
      "description": "string",
      "isCorrect": boolean,
      "marksAwarded": number,
      "maxMarksForStep": number,
      "feedback": "string"
    }
  ],
  "overallFeedback": "string"
}"""

FREE_EVALUATION_SYSTEM_PROMPT = f"""You are an experienced school mathematics examiner.
Evaluate ONE student's subjective answer.

You will be given the question, the total marks, the model correct answer and the
student's answer (which may contain OCR or spelling noise).

1) Work out the complete expected solution.
2) Break it into 2 to 5 logical steps and share the total marks between them.
3) Judge each step of the student's answer against your steps, awarding partial
   marks where a step is partly right.
4) For every step say what the student did, what was expected and how to improve.

{_OUTPUT_SCHEMA}

Rules:
- earnedMarks must be between 0 and maxMarks
- marksAwarded must not exceed maxMarksForStep
- the sum of marksAwarded must equal earnedMarks
- return ONLY JSON, no extra text"""

RUBRIC_EVALUATION_SYSTEM_PROMPT = f"""You are an experienced school mathematics examiner.
Evaluate ONE student's subjective answer using the MARKING RUBRIC provided.

You will be given the question, the marking rubric (steps with marks for each),
the model correct answer and the student's answer (which may contain OCR or
spelling noise).

1) Evaluate every rubric step independently and IN ORDER.
2) Award up to the step's marks; partial marks are allowed.
3) For every step say what the student did, what the rubric expected and, if the
   step is wrong or incomplete, what needs to improve.
4) Finish with overall feedback on the approach, key gaps and how to improve.

{_OUTPUT_SCHEMA}

Rules:
- stepAnalysis must follow the rubric steps exactly, one entry per step
- marksAwarded must not exceed the step's marks from the rubric
- the sum of marksAwarded must equal earnedMarks
- earnedMarks must be between 0 and maxMarks
- return ONLY JSON, no extra text"""

# "Q1", "Question 2", "3." or "4)" at the start of a line; "3.14" is not a marker
QUESTION_MARKER = re.compile(
    r"^[ \t]*(?:Q(?:uestion)?[ \t]*(\d+)[ \t]*[.):\-]?|(\d+)[ \t]*[.)](?=\s|$))",
    re.IGNORECASE | re.MULTILINE,
)


def split_answers_by_question(raw_text: str, question_numbers: list[int]) -> dict[int, str]:
    """
    Map each question number to the part of the sheet that answers it.

    Without any markers every question gets the whole text. When the markers use
    the exam's own numbering chunks are matched by number, and a chunk whose
    number is not one of the questions (a numbered step inside an answer) stays
    with the answer before it. Otherwise chunks are handed out in order.
    Questions left over get an empty answer.
    """
    text = raw_text or ""
    markers = list(QUESTION_MARKER.finditer(text))
    if not markers:
        whole = text.strip()
        return {number: whole for number in question_numbers}

    # (number, text after the marker, text including the marker)
    chunks: list[tuple[int, str, str]] = []
    for i, marker in enumerate(markers):
        end = markers[i + 1].start() if i + 1 < len(markers) else len(text)
        number = int(marker.group(1) or marker.group(2))
        chunks.append((number, text[marker.end():end].strip(), text[marker.start():end].strip()))

    wanted = set(question_numbers)
    if {number for number, _, _ in chunks} & wanted:
        by_number: dict[int, str] = {}
        current = None
        for number, body, full in chunks:
            if number in wanted:
                current = number
                by_number[number] = f"{by_number.get(number, '')}\n{body}".strip()
            elif current is not None:
                by_number[current] = f"{by_number[current]}\n{full}".strip()
        return {number: by_number.get(number, "") for number in question_numbers}

    return {
        number: chunks[i][1] if i < len(chunks) else ""
        for i, number in enumerate(question_numbers)
    }


def _format_rubric(rubric: Rubric) -> str:
    return "\n".join(
        f"  Step {step.step_number}: {step.description} [{step.marks} marks]"
        for step in rubric.steps
    )


def build_user_prompt(scored: ScoredQuestion, student_answer: str, rubric: Rubric | None) -> str:
    question = scored.question
    if rubric is not None:
        return (
            f"Question: {question.question_text}\n\n"
            f"MARKING RUBRIC:\n{_format_rubric(rubric)}\n"
            f"Total Marks: {rubric.total_marks}\n\n"
            f"Model Correct Answer:\n{question.correct_answer}\n\n"
            f"Student's Answer:\n{student_answer}"
        )
    return (
        f"Question: {question.question_text}\n"
        f"Total Marks: {scored.marks}\n\n"
        f"Model Correct Answer:\n{question.correct_answer}\n\n"
        f"Student's Answer:\n{student_answer}"
    )


def _placeholder_result(
    scored: ScoredQuestion, max_marks: float, student_answer: str, feedback: str
) -> SubjectiveEvaluationResult:
    return SubjectiveEvaluationResult(
        question_id=scored.question.question_id,
        question_number=scored.number,
        question_text=scored.question.question_text,
        earned_marks=0,
        max_marks=max_marks,
        is_fully_correct=False,
        expected_answer=scored.question.correct_answer,
        student_answer_echo=student_answer,
        step_analysis=[],
        overall_feedback=feedback,
    )


class SubjectiveEvaluator:
    def __init__(
        self,
        llm: LLMClient,
        rubrics: RubricStore,
        *,
        normalization: str | None = None,
    ):
        self.llm = llm
        self.rubrics = rubrics
        self.normalization = normalization or settings.OCR_NORMALIZATION

    def _normalize(self, answer: str) -> str:
        if self.normalization == "rules":
            return math_normalizer.normalize_rules(answer)
        if self.normalization == "llm":
            return math_normalizer.normalize(answer, self.llm).normalized_answer
        return answer

    def evaluate_question(
        self, exam_id: str, scored: ScoredQuestion, student_answer: str
    ) -> SubjectiveEvaluationResult:
        """Evaluate one answer. LLM and parse failures propagate."""
        rubric = self.rubrics.get(exam_id, scored.question.question_id)
        max_marks = rubric.total_marks if rubric is not None else scored.marks

        if not student_answer.strip():
            return _placeholder_result(scored, max_marks, "", NO_ANSWER_FEEDBACK)

        answer = self._normalize(student_answer)
        system_prompt = (
            RUBRIC_EVALUATION_SYSTEM_PROMPT if rubric is not None else FREE_EVALUATION_SYSTEM_PROMPT
        )
        reply = self.llm.complete(system_prompt, build_user_prompt(scored, answer, rubric))

        try:
            result = SubjectiveEvaluationResult.model_validate(parse_json_response(reply))
        except PydanticValidationError as e:
            raise EvaluationParseError(f"Unexpected evaluation schema: {e}") from e

        result.question_id = scored.question.question_id
        result.question_number = scored.number
        result.question_text = scored.question.question_text
        result.max_marks = max_marks
        if not result.expected_answer:
            result.expected_answer = scored.question.correct_answer
        if not result.student_answer_echo:
            result.student_answer_echo = answer

        logger.info(
            f"Evaluated exam={exam_id} question={scored.question.question_id}: "
            f"{result.earned_marks}/{max_marks} "
            f"({'rubric' if rubric else 'free'}, {len(result.step_analysis)} steps)"
        )
        return result

    def evaluate_exam(self, exam: Exam, raw_text: str) -> list[SubjectiveEvaluationResult]:
        questions = exam.subjective_questions()
        answers = split_answers_by_question(raw_text, [q.number for q in questions])

        results = []
        for scored in questions:
            answer = answers.get(scored.number, "")
            try:
                results.append(self.evaluate_question(exam.exam_id, scored, answer))
            except ExamServiceError as e:
                logger.error(
                    f"Evaluation failed for exam={exam.exam_id} "
                    f"question={scored.question.question_id}: {e}"
                )
                rubric = self.rubrics.get(exam.exam_id, scored.question.question_id)
                max_marks = rubric.total_marks if rubric is not None else scored.marks
                results.append(_placeholder_result(scored, max_marks, answer, ERROR_FEEDBACK))
        return results
