"""Deterministic quality scoring of provider output.

Each task type maps to a scoring function ``(text) -> (score, reasons)``. The
functions are string heuristics only: no randomness, no clock, no I/O, so the
same text always gets the same score. Swap one out with ``register_scorer``.
"""

import json
import re
from collections.abc import Callable

from orchestra.models import GenResult, ScoredResult, TaskType

ScoreFn = Callable[[str], tuple[float, list[str]]]

MIN_SCORE = 0.0
MAX_SCORE = 100.0

_CODE_BASELINE = 70.0
_TEXT_BASELINE = 50.0

_IMPORT_RE = re.compile(r"^\s*(import|from)\s+\S+", re.MULTILINE)
_EXPORT_RE = re.compile(r"\bexport\b|^\s*(def|class)\s+\w+", re.MULTILINE)
_TYPING_RE = re.compile(
    r"\binterface\s+\w+|\btype\s+\w+\s*=|->\s*\w+|:\s*(str|int|float|bool|string|number|boolean)\b"
)
_TRY_RE = re.compile(r"\btry\b")
_HANDLER_RE = re.compile(r"\bcatch\b|\bexcept\b")
_STYLE_RE = re.compile(r"StyleSheet\.create|\bstyled\.\w+|\bclassName=|\bstyle=\{")
_STATE_RE = re.compile(r"\buse(State|Effect|Reducer)\b|\bcreateStore\b|\bsetState\b")
_ANY_RE = re.compile(r":\s*any\b|\bas\s+any\b|<any>")
_DEBUG_PRINT_RE = re.compile(r"\bconsole\.log\(")
_COMMENT_LINE_RE = re.compile(r"^\s*(//|#|/\*|\*\s)", re.MULTILINE)
_TEST_ID_RE = re.compile(r"\btestI[dD]\b")
_JSON_RE = re.compile(r"\{[\s\S]*\}")
_HEADING_RE = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def _clamp(score: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, score))


def has_valid_json(text: str) -> bool:
    match = _JSON_RE.search(text)
    if not match:
        return False
    try:
        json.loads(match.group(0))
    except ValueError:
        return False
    return True


def score_code(text: str) -> tuple[float, list[str]]:
    """Structural signals of a complete, rigorous code answer."""
    score = _CODE_BASELINE
    reasons: list[str] = []

    if _IMPORT_RE.search(text) and _EXPORT_RE.search(text):
        score += 5
        reasons.append("module structure")
    if _TYPING_RE.search(text):
        score += 5
        reasons.append("explicit types")
    if _TRY_RE.search(text) and _HANDLER_RE.search(text):
        score += 5
        reasons.append("error handling")
    if _STYLE_RE.search(text):
        score += 5
        reasons.append("style declarations")
    if _STATE_RE.search(text):
        score += 5
        reasons.append("state management")
    if len(_COMMENT_LINE_RE.findall(text)) > 2:
        score += 3
        reasons.append("commented")
    lines = text.count("\n") + 1
    if 20 < lines < 500:
        score += 2
        reasons.append(f"{lines} lines")
    if _TEST_ID_RE.search(text):
        score += 2
        reasons.append("test ids")
    if not _ANY_RE.search(text):
        score += 3
        reasons.append("no untyped escape hatch")
    if not _DEBUG_PRINT_RE.search(text):
        score += 2
        reasons.append("no debug prints")

    return _clamp(score), reasons


def score_text(text: str) -> tuple[float, list[str]]:
    """Length and structure signals for prose answers."""
    score = _TEXT_BASELINE
    reasons: list[str] = []

    word_count = len(text.split())
    if word_count > 50:
        score += min(word_count / 5, 30.0)
        reasons.append(f"{word_count} words")

    sentences = len([s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()])
    if sentences > 3:
        score += min(sentences * 5.0, 20.0)
        reasons.append(f"{sentences} sentences")

    if has_valid_json(text):
        score += 15
        reasons.append("structured data")

    if _HEADING_RE.search(text):
        score += 5
        reasons.append("headings")

    return _clamp(score), reasons


SCORERS: dict[TaskType, ScoreFn] = {
    TaskType.CODE: score_code,
    TaskType.TEXT: score_text,
}


def register_scorer(task_type: TaskType | str, fn: ScoreFn) -> None:
    """Replace the scoring function used for ``task_type``."""
    SCORERS[TaskType(task_type)] = fn


def score_result(result: GenResult, task_type: TaskType | str = TaskType.TEXT) -> ScoredResult:
    if not result.ok or not result.text:
        return ScoredResult.from_result(result, MIN_SCORE, result.error or "No valid output")
    score, reasons = SCORERS[TaskType(task_type)](result.text)
    return ScoredResult.from_result(result, round(score, 2), "; ".join(reasons))


def score_results(results: list[GenResult], task_type: TaskType | str = TaskType.TEXT) -> list[ScoredResult]:
    return [score_result(r, task_type) for r in results]
