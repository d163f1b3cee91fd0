"""
Turn free-text model answers into EvaluationRecord objects.

Each field is extracted by an ordered table of strategies. A strategy is a
pure ``text -> value | None`` function and the first non-None value wins;
when every strategy misses, the field takes its documented default. Parsing
never raises: an unexpected failure produces a placeholder record.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from data_models import EvaluationMode, EvaluationRecord, MatchStatus, SkillBlock

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
Strategy = Callable[[str], Optional[T]]

DEFAULT_MATCH_THRESHOLD = 6.0

CAREER_NOT_FOUND = "Career summary not found"
CAREER_NOT_PROVIDED = "Career summary not provided"
DEFAULT_SUGGESTION = "Consider adding more details to your resume"
UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_ROLE = "Unknown Role"

_DEFAULT_SCORE = {EvaluationMode.RESUME_ONLY: 5.0, EvaluationMode.JOB_MATCH: 0.0}
_DEFAULT_STRENGTHS = {
    EvaluationMode.RESUME_ONLY: "No specific strengths identified",
    EvaluationMode.JOB_MATCH: "N/A",
}
_DEFAULT_WEAKNESSES = {
    EvaluationMode.RESUME_ONLY: "No specific weaknesses identified",
    EvaluationMode.JOB_MATCH: "N/A",
}

_EMPTY_VALUES = {"", "none", "n/a", "na", "null", "-"}

# Canonical top-level headings, in answer order. Job Details only appears in
# job-match answers, so numbering differs by mode.
_MAIN_HEADINGS = {
    "career": r"Career Summary",
    "score": r"ATS Score",
    "job": r"Job Details",
    "strengths": r"Strengths and Weaknesses",
    "suggestions": r"Suggestions(?: to improve| for improvement)?",
}
_HEADING_ORDER = ("career", "score", "job", "strengths", "suggestions")
_SKILL_SECTIONS = (
    ("work_experience", "A", "Work Experience"),
    ("certificates", "B", "Certificates"),
    ("projects", "C", "Projects"),
    ("technical_skills", "D", "Technical Skills"),
)
_HEADING_NUMBERS = {
    EvaluationMode.RESUME_ONLY: {
        "Career Summary": 1,
        "ATS Score": 2,
        "Strengths and Weaknesses": 3,
        "Suggestions to improve": 4,
    },
    EvaluationMode.JOB_MATCH: {
        "Career Summary": 1,
        "ATS Score": 2,
        "Job Details": 3,
        "Strengths and Weaknesses": 4,
        "Suggestions to improve": 5,
    },
}

_NUMBER = r"(\d+(?:\.\d+)?)"
_BULLET_RE = re.compile(r"^\s*(?:[•●▪\-\*]+|\d+[.)])\s*")


def _main_heading_re(key: str) -> str:
    return rf"^[ \t]*(?:\d+\.[ \t]*)?{_MAIN_HEADINGS[key]}\b"


def _skill_heading_re(letter: str, name: str) -> str:
    return rf"^[ \t]*{letter}\.[ \t]*{name}\b"


_ORDERED_HEADINGS: List[Tuple[str, str]] = [(key, _main_heading_re(key)) for key in _HEADING_ORDER] + [
    (field_name, _skill_heading_re(letter, name)) for field_name, letter, name in _SKILL_SECTIONS
]


def _section(text: str, key: str) -> Optional[str]:
    """
    Return the body of a heading up to the next known heading, or None.

    The rest of the heading line belongs to the body, minus a leading colon,
    so ``1. Career Summary: text`` yields ``text``.
    """
    keys = [name for name, _ in _ORDERED_HEADINGS]
    index = keys.index(key)
    start = re.search(_ORDERED_HEADINGS[index][1], text, re.IGNORECASE | re.MULTILINE)
    if not start:
        return None
    later = "|".join(f"(?:{pattern})" for _, pattern in _ORDERED_HEADINGS[index + 1:])
    end_pos = len(text)
    if later:
        end = re.compile(later, re.IGNORECASE | re.MULTILINE).search(text, start.end())
        if end:
            end_pos = end.start()
    body = text[start.end():end_pos]
    return body.lstrip(" \t:：-").strip()


def normalize_headings(text: str, mode: EvaluationMode) -> str:
    """
    Rewrite unnumbered or markdown-styled headings to their numbered form.

    ``**Career Summary:**`` becomes ``1. Career Summary:`` so the section
    strategies only have to deal with one heading shape.
    """
    text = text.replace("\r\n", "\n").replace("**", "")
    text = re.sub(r"^[ \t]*#+[ \t]*", "", text, flags=re.MULTILINE)
    for heading, number in _HEADING_NUMBERS[mode].items():
        pattern = _MAIN_HEADINGS["suggestions"] if heading.startswith("Suggestions") else heading
        text = re.sub(
            rf"^[ \t]*({pattern})\b",
            lambda m, n=number, h=heading: f"{n}. {h}",
            text,
            flags=re.IGNORECASE | re.MULTILINE,
        )
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def extract_list_items(text: Optional[str], split_commas: bool = True) -> List[str]:
    """
    Normalize a free-text list into items.

    Lines are stripped of bullet and numeral markers; with ``split_commas``
    each line is further split on commas. When nothing survives, the text is
    split on sentence terminators keeping fragments longer than 10 chars.

    Args:
        text: Raw list text, optionally wrapped in square brackets.
        split_commas: Split lines on commas (skills, strengths).

    Returns:
        List of non-empty items, possibly empty.
    """
    if not text:
        return []
    body = text.strip()
    if body.startswith("[") and body.endswith("]"):
        body = body[1:-1]

    items: List[str] = []
    for line in body.splitlines():
        line = _BULLET_RE.sub("", line).strip().strip("[]").strip()
        if not line:
            continue
        parts = line.split(",") if split_commas else [line]
        for part in parts:
            part = part.strip().strip("[]").strip()
            if part:
                items.append(part)

    if not items:
        items = [s.strip() for s in re.split(r"[.!?]+", body) if len(s.strip()) > 10]
    return items


def _meaningful_items(text: Optional[str], split_commas: bool = True) -> Optional[List[str]]:
    """List items, or None when empty or only placeholders like ``None``."""
    items = extract_list_items(text, split_commas=split_commas)
    if not items or all(item.lower() in _EMPTY_VALUES for item in items):
        return None
    return items


def _clean_value(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip().strip("[]\"'*").strip()
    if cleaned.lower() in _EMPTY_VALUES:
        return None
    return cleaned


def first_success(strategies: Sequence[Strategy], text: str) -> Optional[T]:
    for strategy in strategies:
        value = strategy(text)
        if value is not None:
            return value
    return None


def _capture(pattern: str, flags: int = re.IGNORECASE) -> Strategy:
    compiled = re.compile(pattern, flags)

    def strategy(text: str) -> Optional[str]:
        match = compiled.search(text)
        return match.group(1) if match else None

    return strategy


def _number(pattern: str, flags: int = re.IGNORECASE) -> Strategy:
    capture = _capture(pattern, flags)

    def strategy(text: str) -> Optional[float]:
        value = capture(text)
        return float(value) if value is not None else None

    return strategy


SCORE_STRATEGIES: List[Strategy] = [
    _number(rf"\bScore\s*:\s*\[?\s*{_NUMBER}"),
    _number(
        rf"^\s*\d+\.\s*ATS Score(?:\s*out of\s*10)?\s*:?[ \t]*\n?[ \t]*{_NUMBER}\s*(?:/\s*10)?[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
    ),
    _number(rf"ATS Score\s*[:\-]?\s*{_NUMBER}"),
    _number(rf"{_NUMBER}\s*(?:/|out of)\s*10\b"),
]


def _list_strategy(pattern: str, split_commas: bool = True, flags: int = re.IGNORECASE | re.DOTALL) -> Strategy:
    capture = _capture(pattern, flags)

    def strategy(text: str) -> Optional[List[str]]:
        return _meaningful_items(capture(text), split_commas=split_commas)

    return strategy


_UNTIL_BLANK = r"(?=\n[ \t]*\n|\Z)"

_LABEL_FLAGS = re.IGNORECASE | re.DOTALL | re.MULTILINE

STRENGTH_STRATEGIES: List[Strategy] = [
    _list_strategy(r"^[ \t]*Strengths\s*:\s*\[(.*?)\]", flags=_LABEL_FLAGS),
    _list_strategy(r"^[ \t]*Strengths\s*[:\-—]?\s*(.*?)\s*\bWeaknesses\s*[:\-—]", flags=_LABEL_FLAGS),
    _list_strategy(rf"^[ \t]*Strengths\s*[:\-—]\s*(.*?)(?=\n\s*Weaknesses\b|\n[ \t]*\n|\Z)", flags=_LABEL_FLAGS),
]

WEAKNESS_STRATEGIES: List[Strategy] = [
    _list_strategy(r"\bWeaknesses\s*:\s*\[(.*?)\]"),
    _list_strategy(rf"^[ \t]*Strengths\s*[:\-—]?.*?\bWeaknesses\s*[:\-—]\s*(.*?){_UNTIL_BLANK}", flags=_LABEL_FLAGS),
    _list_strategy(rf"\bWeaknesses\s*[:\-—]\s*(.*?){_UNTIL_BLANK}"),
]

SUGGESTION_STRATEGIES: List[Strategy] = [
    lambda text: _meaningful_items(_section(text, "suggestions"), split_commas=False),
    _list_strategy(rf"^\s*Suggestions?\s*:\s*(.*?){_UNTIL_BLANK}", split_commas=False,
                   flags=re.IGNORECASE | re.DOTALL | re.MULTILINE),
]


def _value_strategy(pattern: str, flags: int = re.IGNORECASE | re.MULTILINE) -> Strategy:
    capture = _capture(pattern, flags)
    return lambda text: _clean_value(capture(text))


COMPANY_STRATEGIES: List[Strategy] = [
    _value_strategy(r"\bCompany(?:\s+Name)?\s*:\s*\[([^\]\n]*)\]"),
    _value_strategy(r"\bCompany(?:\s+Name)?\s*:[ \t]*(.*?)[ \t]*(?=\bRole\s*:|\bMatch Status\s*:|$)"),
    _value_strategy(r"\bCompany(?:\s+Name)?[ \t]*[-–—][ \t]*([^\n]+)"),
]

ROLE_STRATEGIES: List[Strategy] = [
    _value_strategy(r"\b(?:Role|Job Title|Position)\s*:\s*\[([^\]\n]*)\]"),
    _value_strategy(r"\b(?:Role|Job Title|Position)\s*:[ \t]*(.*?)[ \t]*(?=\bMatch Status\s*:|$)"),
    _value_strategy(r"\b(?:Role|Job Title|Position)[ \t]*[-–—][ \t]*([^\n]+)"),
]

_MATCH_STATUS_RE = re.compile(r"Match Status\s*:\s*\[?\s*(UNMATCHED|NOT\s+MATCHED|MATCHED)", re.IGNORECASE)


def _skill_strategies(name: str) -> Tuple[List[Strategy], List[Strategy]]:
    """Matched-skill and gap cascades for one lettered block."""
    matched = [
        _list_strategy(r"Matched Skills\s*:\s*\[(.*?)\]"),
        _list_strategy(r"Matched Skills\s*:\s*(.*?)(?=\n\s*Gaps\s*:|\Z)"),
    ]
    gaps = [
        _list_strategy(r"Gaps\s*:\s*\[(.*?)\]"),
        _list_strategy(r"Gaps\s*:\s*(.*?)\Z"),
    ]
    fallback = _list_strategy(rf"{name}[^\n]*\n[^\n]*?Matched Skills\s*:\s*([^\n]+)")
    return matched + [fallback], gaps


SKILL_STRATEGIES = {field_name: _skill_strategies(name) for field_name, _, name in _SKILL_SECTIONS}

_NAME_SKIP_WORDS = ("error", "enable", "you need to", "please", "click", "javascript", "resume", "curriculum", "vitae")


def _is_skippable_line(line: str) -> bool:
    lower = line.lower()
    if len(line) > 100:
        return True
    if any(word in lower for word in _NAME_SKIP_WORDS):
        return True
    return re.search(r"\bcv\b", lower) is not None


def _as_person_name(line: str) -> Optional[str]:
    words = line.split()
    if not 2 <= len(words) <= 4:
        return None
    cleaned = []
    for word in words:
        letters = re.sub(r"[^A-Za-z]", "", word)
        if not 2 <= len(letters) <= 20 or len(letters) < 0.8 * len(word):
            return None
        cleaned.append(letters)
    return " ".join(cleaned)


def derive_display_name(source_text: str) -> str:
    """
    Guess the candidate's name from the top of the résumé.

    Args:
        source_text: Extracted résumé text.

    Returns:
        The name as written, a short cleaned header line, or ``"Resume"``.
    """
    lines = [line.strip() for line in (source_text or "").splitlines() if line.strip()]
    for line in lines[:10]:
        if _is_skippable_line(line):
            continue
        name = _as_person_name(line)
        if name:
            return name

    for line in lines[:5]:
        if len(line) >= 50 or _is_skippable_line(line):
            continue
        cleaned = re.sub(r"\s+", " ", re.sub(r"[^A-Za-z0-9 ]", "", line)).strip()
        if 2 < len(cleaned) < 50:
            return cleaned
    return "Resume"


def _label_part(value: Optional[str], fallback: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9 \-]", "", value or "").strip()
    cleaned = re.sub(r"\s+", "_", cleaned)
    return cleaned or fallback


def build_candidate_label(
    display_name: str,
    company_name: Optional[str],
    role_name: Optional[str],
    clock: Callable[[], float] = time.time,
) -> str:
    """Build ``Name_Company_Role_NNNNNN`` where the suffix is the clock's last six millisecond digits."""
    lower = (display_name or "").lower()
    if not display_name or "error" in lower or "enable" in lower:
        display_name = "Candidate"
    suffix = str(int(clock() * 1000))[-6:]
    return "_".join(
        (
            _label_part(display_name, "Candidate"),
            _label_part(company_name, "UnknownCompany"),
            _label_part(role_name, "UnknownRole"),
            suffix,
        )
    )


class EvaluationParser:
    """Parse model answers for either evaluation mode."""

    def __init__(self, match_threshold: float = DEFAULT_MATCH_THRESHOLD) -> None:
        self.match_threshold = match_threshold

    def parse(
        self,
        raw_text: str,
        mode: EvaluationMode,
        candidate_source_text: str = "",
    ) -> EvaluationRecord:
        """
        Parse one answer into a complete record.

        Args:
            raw_text: Text returned by the generative service.
            mode: Mode the prompt was built for.
            candidate_source_text: Résumé text, used to name the candidate.

        Returns:
            EvaluationRecord with every field populated.
        """
        try:
            return self._parse(raw_text or "", mode, candidate_source_text)
        except Exception:
            LOGGER.warning("Failed to parse model answer; using placeholder record", exc_info=True)
            return self._placeholder(mode, candidate_source_text)

    def _parse(self, raw_text: str, mode: EvaluationMode, candidate_source_text: str) -> EvaluationRecord:
        text = normalize_headings(raw_text, mode)
        record = EvaluationRecord(mode=mode)

        record.career_summary = self._career_summary(text)

        score = first_success(SCORE_STRATEGIES, text)
        if score is None:
            score = _DEFAULT_SCORE[mode]
            LOGGER.warning("No score found in model answer; defaulting to %.1f", score)
        record.ats_score = max(0.0, min(10.0, score))

        scope = _section(text, "strengths")
        located = scope is not None
        scope = scope if located else text
        strengths = first_success(STRENGTH_STRATEGIES, scope)
        if strengths is None and located and not re.search(r"(Strengths|Weaknesses)\s*[:\-—]", scope, re.I):
            strengths = _meaningful_items(scope, split_commas=False)
        record.strengths = strengths or [_DEFAULT_STRENGTHS[mode]]
        record.weaknesses = first_success(WEAKNESS_STRATEGIES, scope) or [_DEFAULT_WEAKNESSES[mode]]

        record.suggestions = first_success(SUGGESTION_STRATEGIES, text) or [DEFAULT_SUGGESTION]

        for field_name, _, _ in _SKILL_SECTIONS:
            setattr(record, field_name, self._skill_block(text, field_name, mode))

        if mode is EvaluationMode.JOB_MATCH:
            record.company_name = first_success(COMPANY_STRATEGIES, text) or UNKNOWN_COMPANY
            record.role_name = first_success(ROLE_STRATEGIES, text) or UNKNOWN_ROLE
            record.match_status = self._match_status(text, record.ats_score)

        record.display_name = derive_display_name(candidate_source_text)
        return record

    @staticmethod
    def _career_summary(text: str) -> str:
        body = _section(text, "career")
        if body is None:
            return CAREER_NOT_FOUND
        summary = " ".join(body.split()).strip("[]").strip()
        if summary.lower() in _EMPTY_VALUES:
            return CAREER_NOT_PROVIDED
        return summary

    @staticmethod
    def _skill_block(text: str, field_name: str, mode: EvaluationMode) -> SkillBlock:
        matched_strategies, gap_strategies = SKILL_STRATEGIES[field_name]
        block = _section(text, field_name)
        block_strategies = matched_strategies[:-1]
        matched = first_success(block_strategies, block) if block is not None else None
        if matched is None:
            matched = matched_strategies[-1](text)

        gaps = None
        if mode is EvaluationMode.JOB_MATCH and block is not None:
            gaps = first_success(gap_strategies, block)
        return SkillBlock(matched_skills=matched or ["None"], gaps=gaps or ["None"])

    def _match_status(self, text: str, score: float) -> MatchStatus:
        match = _MATCH_STATUS_RE.search(text)
        if match:
            token = match.group(1).upper()
            return MatchStatus.MATCHED if token == "MATCHED" else MatchStatus.UNMATCHED
        return MatchStatus.MATCHED if score >= self.match_threshold else MatchStatus.UNMATCHED

    def _placeholder(self, mode: EvaluationMode, candidate_source_text: str) -> EvaluationRecord:
        record = EvaluationRecord(
            mode=mode,
            career_summary="Error parsing response",
            ats_score=5.0,
            strengths=["Error parsing strengths"],
            weaknesses=["Error parsing weaknesses"],
            suggestions=["Error parsing suggestions"],
        )
        if mode is EvaluationMode.JOB_MATCH:
            record.company_name = UNKNOWN_COMPANY
            record.role_name = UNKNOWN_ROLE
            record.match_status = MatchStatus.UNMATCHED
        record.display_name = derive_display_name(candidate_source_text)
        return record
