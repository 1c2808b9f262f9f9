# exam_service/services/math_normalizer.py
"""
Cleanup of math notation in OCR'd student answers.

Handwriting OCR tends to flatten "x²" into "x 2", split "d/dx" into "d dx" and so
on. A rule pass fixes the common cases; an optional LLM pass handles the rest and
falls back to the rule result on any failure.
"""
import logging
import re

from exam_service.core.exceptions import EvaluationParseError, LLMServiceError
from exam_service.schemas.evaluation import MathNormalizationResult
from exam_service.services.llm_client import LLMClient, parse_json_response

logger = logging.getLogger(__name__)

MATH_NORMALIZER_SYSTEM_PROMPT = """You are a Mathematical OCR Normalizer.

Your task:
- Convert noisy OCR output into clean mathematical text.
- Fix broken equations, symbols, spacing and formatting.
- Repair misread characters, superscripts and subscripts.
- Do NOT add steps or explanations. Only normalize what the student wrote.

Rules for output:
- Keep the exact meaning of the student's answer.
- Preserve every step the student attempted.
- Fix notation only, not logic.

Return JSON only:
{
  "normalizedAnswer": "string"
}

Examples:
- OCR: "d dx x2  +3 x" -> "d/dx (x^2 + 3x)"
- OCR: "lim x -> 0 sin x / x = 1" -> "lim(x->0) sin(x)/x = 1"
- OCR: "f ' ( x ) = 2 x" -> "f'(x) = 2x"
"""

# (pattern, replacement) applied in order
_RULES = [
    (re.compile(r"\bd\s+d([xyt])\b", re.IGNORECASE), r"d/d\1"),
    # a lone lowercase variable followed by a digit is a flattened power: x 2 -> x^2
    (re.compile(r"(?<![A-Za-z])([a-z])[ \t]?(\d)(?![\d^.])"), r"\1^\2"),
    (re.compile(r"\^[ \t]+"), "^"),
    (re.compile(r"\b([a-zA-Z])[ \t]*\([ \t]*([a-zA-Z])[ \t]*\)"), r"\1(\2)"),
    (re.compile(r"\b([a-zA-Z])[ \t]*'[ \t]*\("), r"\1'("),
    (re.compile(r"lim[ \t]+([a-zA-Z])[ \t]*(?:→|->)+[ \t]*(\S+)"), r"lim(\1→\2)"),
    (re.compile(r"∫[ \t]+"), "∫"),
    (re.compile(r"\bdet[ \t]+([A-Z])\b"), r"det(\1)"),
    (re.compile(r"\b([A-Z])[ \t]*\^[ \t]*-[ \t]*1\b"), r"\1^(-1)"),
    (re.compile(r"[ \t]*/[ \t]*"), "/"),
    (re.compile(r"[ \t]*\+[ \t]*"), " + "),
    (re.compile(r"[ \t]*=[ \t]*"), " = "),
]

_SYMBOLS = {"×": "*", "÷": "/", "−": "-", "–": "-"}


def normalize_rules(text: str) -> str:
    if not text or not text.strip():
        return text or ""

    result = text
    for symbol, replacement in _SYMBOLS.items():
        result = result.replace(symbol, replacement)
    for pattern, replacement in _RULES:
        result = pattern.sub(replacement, result)

    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in result.splitlines()]
    return "\n".join(lines).strip()


def normalize(text: str, llm: LLMClient | None = None) -> MathNormalizationResult:
    original = text or ""
    if not original.strip():
        return MathNormalizationResult(
            normalized_answer="", original_text=original, was_modified=False
        )

    normalized = normalize_rules(original)

    if llm is not None:
        try:
            reply = llm.complete(
                MATH_NORMALIZER_SYSTEM_PROMPT,
                f"Normalize this OCR output:\n\n{normalized}",
            )
            candidate = str(parse_json_response(reply).get("normalizedAnswer") or "").strip()
            if candidate:
                normalized = candidate
        except (LLMServiceError, EvaluationParseError) as e:
            logger.warning(f"LLM normalization failed, keeping rule-based result: {e}")

    return MathNormalizationResult(
        normalized_answer=normalized,
        original_text=original,
        was_modified=normalized != original,
    )
