# exam_service/services/mcq_extraction.py
import logging
import re

from exam_service.schemas.evaluation import ExtractedMcqAnswer

logger = logging.getLogger(__name__)

# Tried in order; the first pattern that matches anything wins.
_ANSWER_PATTERNS = [
    re.compile(r"(?:Q|q)?(\d+)\s*\)\s*([A-Da-d])\b"),      # 1) A
    re.compile(r"(?:Q|q)?(\d+)\s*\.\s*([A-Da-d])\b"),      # 1. A
    re.compile(r"(?:Q|q)?(\d+)\s*:\s*([A-Da-d])\b"),       # 1: A
    re.compile(r"(?:Q|q)?(\d+)\s*-\s*([A-Da-d])\b"),       # 1-A
    re.compile(r"(?:Q|q)?(\d+)\s+([A-Da-d])\b"),           # Q1 A / 1 A
    re.compile(r"(\d+)\s*-\s*([A-Da-d])(?:\s*,|\s+)"),     # answer key list "1-A, 2-B"
]


def extract_mcq_answers(raw_text: str) -> list[ExtractedMcqAnswer]:
    """
    Pull "question number -> option letter" pairs out of OCR text.

    Only options A-D are recognised and the first occurrence of a question
    number is kept. Confidence is always 1.0 for regex matches.
    """
    if not raw_text or not raw_text.strip():
        return []

    for index, pattern in enumerate(_ANSWER_PATTERNS):
        found: dict[int, str] = {}
        for match in pattern.finditer(raw_text):
            number = int(match.group(1))
            if number <= 0 or number in found:
                continue
            found[number] = match.group(2).upper()
        if found:
            logger.info(f"MCQ sheet parse: pattern #{index + 1} matched {len(found)} answers")
            return [
                ExtractedMcqAnswer(question_number=number, selected_option=option)
                for number, option in sorted(found.items())
            ]

    logger.info("MCQ sheet parse: no answers found")
    return []
