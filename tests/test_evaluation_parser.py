from __future__ import annotations

import pytest

import evaluation_parser
from data_models import EvaluationMode, MatchStatus
from evaluation_parser import (
    CAREER_NOT_FOUND,
    CAREER_NOT_PROVIDED,
    DEFAULT_SUGGESTION,
    UNKNOWN_COMPANY,
    UNKNOWN_ROLE,
    EvaluationParser,
    build_candidate_label,
    derive_display_name,
    extract_list_items,
    normalize_headings,
)

JOB_MATCH_ANSWER = """1. Career Summary
Backend engineer with 6 years of Python experience.

2. ATS Score out of 10
Score: 8

3. Job Details
Company: [Acme Corp]
Role: [Platform Engineer]
Match Status: [MATCHED]

4. Strengths and Weaknesses
Strengths: [Python, AWS, Team leadership]
Weaknesses: [No Kubernetes experience]

5. Suggestions to improve
- Add Kubernetes projects
- Quantify achievements, e.g. latency reductions

A. Work Experience
Matched Skills: [Python services, REST APIs]
Gaps: [Kubernetes]

B. Certificates
Matched Skills: [None]
Gaps: [CKA certification]

C. Projects
Matched Skills: [Open source CLI]
Gaps: [None]

D. Technical Skills
Matched Skills: [Python, PostgreSQL]
Gaps: [Go]
"""

RESUME_ONLY_ANSWER = """**Career Summary:** Data analyst with SQL and Tableau experience.

**ATS Score:** 7/10

**Strengths and Weaknesses**
Strengths: Strong SQL, dashboarding
Weaknesses: Limited Python

**Suggestions to improve**
1. Add measurable outcomes
2. List certifications

A. Work Experience
Matched Skills: Data Analyst at Contoso

D. Technical Skills
Matched Skills: SQL, Tableau, Excel
"""


@pytest.fixture
def parser() -> EvaluationParser:
    return EvaluationParser()


def test_parses_job_match_answer(parser: EvaluationParser) -> None:
    record = parser.parse(JOB_MATCH_ANSWER, EvaluationMode.JOB_MATCH, "JANE DOE\nEngineer")

    assert record.mode is EvaluationMode.JOB_MATCH
    assert record.career_summary == "Backend engineer with 6 years of Python experience."
    assert record.ats_score == 8.0
    assert record.company_name == "Acme Corp"
    assert record.role_name == "Platform Engineer"
    assert record.match_status is MatchStatus.MATCHED
    assert record.strengths == ["Python", "AWS", "Team leadership"]
    assert record.weaknesses == ["No Kubernetes experience"]
    assert record.suggestions == [
        "Add Kubernetes projects",
        "Quantify achievements, e.g. latency reductions",
    ]
    assert record.work_experience.matched_skills == ["Python services", "REST APIs"]
    assert record.work_experience.gaps == ["Kubernetes"]
    assert record.certificates.matched_skills == ["None"]
    assert record.certificates.gaps == ["CKA certification"]
    assert record.projects.gaps == ["None"]
    assert record.technical_skills.matched_skills == ["Python", "PostgreSQL"]
    assert record.display_name == "JANE DOE"


def test_parses_markdown_resume_only_answer(parser: EvaluationParser) -> None:
    record = parser.parse(RESUME_ONLY_ANSWER, EvaluationMode.RESUME_ONLY)

    assert record.career_summary == "Data analyst with SQL and Tableau experience."
    assert record.ats_score == 7.0
    assert record.strengths == ["Strong SQL", "dashboarding"]
    assert record.weaknesses == ["Limited Python"]
    assert record.suggestions == ["Add measurable outcomes", "List certifications"]
    assert record.work_experience.matched_skills == ["Data Analyst at Contoso"]
    assert record.technical_skills.matched_skills == ["SQL", "Tableau", "Excel"]
    assert record.certificates.matched_skills == ["None"]
    assert record.company_name is None
    assert record.match_status is None
    assert "companyName" not in record.to_dict()


@pytest.mark.parametrize("mode, expected", [(EvaluationMode.RESUME_ONLY, 5.0), (EvaluationMode.JOB_MATCH, 0.0)])
def test_unstructured_answer_falls_back_to_defaults(
    parser: EvaluationParser, mode: EvaluationMode, expected: float
) -> None:
    record = parser.parse("Nothing useful here", mode)

    assert record.ats_score == expected
    assert record.career_summary == CAREER_NOT_FOUND
    assert record.suggestions == [DEFAULT_SUGGESTION]
    assert record.technical_skills.matched_skills == ["None"]
    if mode is EvaluationMode.JOB_MATCH:
        assert record.company_name == UNKNOWN_COMPANY
        assert record.role_name == UNKNOWN_ROLE
        assert record.match_status is MatchStatus.UNMATCHED


def test_empty_answer_still_yields_record(parser: EvaluationParser) -> None:
    record = parser.parse("", EvaluationMode.RESUME_ONLY)
    assert record.ats_score == 5.0
    assert record.strengths == ["No specific strengths identified"]
    assert record.display_name == "Resume"


def test_score_is_clamped(parser: EvaluationParser) -> None:
    record = parser.parse("2. ATS Score\nScore: 12", EvaluationMode.RESUME_ONLY)
    assert record.ats_score == 10.0


def test_placeholder_career_summary(parser: EvaluationParser) -> None:
    record = parser.parse("1. Career Summary\nN/A\n\n2. ATS Score\nScore: 4", EvaluationMode.RESUME_ONLY)
    assert record.career_summary == CAREER_NOT_PROVIDED
    assert record.ats_score == 4.0


@pytest.mark.parametrize("score, expected", [("6.5", MatchStatus.MATCHED), ("5.9", MatchStatus.UNMATCHED)])
def test_match_status_uses_threshold_without_explicit_token(
    parser: EvaluationParser, score: str, expected: MatchStatus
) -> None:
    record = parser.parse(f"2. ATS Score out of 10\nScore: {score}", EvaluationMode.JOB_MATCH)
    assert record.match_status is expected


def test_explicit_unmatched_token_wins_over_threshold(parser: EvaluationParser) -> None:
    answer = "Score: 9\n3. Job Details\nCompany: Initech\nRole: Analyst\nMatch Status: UNMATCHED"
    record = parser.parse(answer, EvaluationMode.JOB_MATCH)
    assert record.match_status is MatchStatus.UNMATCHED
    assert record.company_name == "Initech"
    assert record.role_name == "Analyst"


def test_unexpected_failure_returns_placeholder(monkeypatch, parser: EvaluationParser) -> None:
    def boom(text, mode):
        raise RuntimeError("broken")

    monkeypatch.setattr(evaluation_parser, "normalize_headings", boom)
    record = parser.parse(JOB_MATCH_ANSWER, EvaluationMode.JOB_MATCH)

    assert record.career_summary == "Error parsing response"
    assert record.ats_score == 5.0
    assert record.match_status is MatchStatus.UNMATCHED


def test_normalize_headings_numbers_markdown_headings() -> None:
    text = normalize_headings("## Career Summary\nText\n\n\n\n**ATS Score**: 6", EvaluationMode.JOB_MATCH)
    assert text == "1. Career Summary\nText\n\n2. ATS Score: 6"


def test_extract_list_items() -> None:
    assert extract_list_items("[Python, Java]") == ["Python", "Java"]
    assert extract_list_items("• Led team\n• Shipped product") == ["Led team", "Shipped product"]
    assert extract_list_items("Use metrics, not adjectives", split_commas=False) == ["Use metrics, not adjectives"]
    assert extract_list_items(None) == []


def test_derive_display_name() -> None:
    assert derive_display_name("JOHN SMITH\nSoftware Engineer") == "JOHN SMITH"
    assert derive_display_name("Curriculum Vitae\nmaria garcia\nData Scientist") == "maria garcia"
    assert derive_display_name("Ronald McDonald\nChef") == "Ronald McDonald"
    assert derive_display_name("Anne-Marie O'Neil\nNurse") == "AnneMarie ONeil"
    assert derive_display_name("") == "Resume"


def test_build_candidate_label() -> None:
    clock = lambda: 1700000123.5  # noqa: E731
    assert build_candidate_label("Jane Doe", "Acme Corp", "Data Engineer", clock) == (
        "Jane_Doe_Acme_Corp_Data_Engineer_123500"
    )
    assert build_candidate_label("Error loading page", "", None, clock) == (
        "Candidate_UnknownCompany_UnknownRole_123500"
    )


def _assert_only_strategy(strategies, index: int, text: str, expected) -> None:
    assert [strategy(text) for strategy in strategies[:index]] == [None] * index
    assert strategies[index](text) == expected


@pytest.mark.parametrize(
    "index, text, expected",
    [
        (0, "Score: 4", 4.0),
        (1, "2. ATS Score\n6.5/10", 6.5),
        (2, "Overall ATS Score - 8 based on keywords", 8.0),
        (3, "The candidate rates 7 out of 10 for this role.", 7.0),
    ],
)
def test_each_score_strategy(parser: EvaluationParser, index: int, text: str, expected: float) -> None:
    _assert_only_strategy(evaluation_parser.SCORE_STRATEGIES, index, text, expected)
    assert parser.parse(text, EvaluationMode.RESUME_ONLY).ats_score == expected


@pytest.mark.parametrize(
    "index, text, expected",
    [
        (0, "Strengths: [Python, SQL]", ["Python", "SQL"]),
        (1, "Strengths\n- Python\n- SQL\nWeaknesses:\n- Go", ["Python", "SQL"]),
        (2, "Strengths: Python, SQL\n\nOther notes", ["Python", "SQL"]),
    ],
)
def test_each_strength_strategy(index: int, text: str, expected) -> None:
    _assert_only_strategy(evaluation_parser.STRENGTH_STRATEGIES, index, text, expected)


def test_unlabelled_strengths_section_is_split_into_items(parser: EvaluationParser) -> None:
    answer = (
        "3. Strengths and Weaknesses\n"
        "- Clear project history\n"
        "- Relevant SQL depth, including window functions\n"
        "\n"
        "4. Suggestions to improve\n"
        "- Add metrics"
    )
    record = parser.parse(answer, EvaluationMode.RESUME_ONLY)

    assert record.strengths == ["Clear project history", "Relevant SQL depth, including window functions"]
    assert record.weaknesses == ["No specific weaknesses identified"]
    assert record.suggestions == ["Add metrics"]


@pytest.mark.parametrize(
    "index, text, expected",
    [
        (0, "Company: [Acme Corp]", "Acme Corp"),
        (1, "Company Name: Initech Role: Analyst", "Initech"),
        (2, "Company - Globex\nRole - Data Analyst", "Globex"),
        (2, "Company — Umbrella Corp", "Umbrella Corp"),
    ],
)
def test_each_company_strategy(index: int, text: str, expected: str) -> None:
    _assert_only_strategy(evaluation_parser.COMPANY_STRATEGIES, index, text, expected)


@pytest.mark.parametrize(
    "index, text, expected",
    [
        (0, "Role: [Platform Engineer]", "Platform Engineer"),
        (1, "Role: Analyst Match Status: MATCHED", "Analyst"),
        (1, "Job Title: Data Engineer", "Data Engineer"),
        (2, "Company - Globex\nRole - Data Analyst", "Data Analyst"),
    ],
)
def test_each_role_strategy(index: int, text: str, expected: str) -> None:
    _assert_only_strategy(evaluation_parser.ROLE_STRATEGIES, index, text, expected)


def test_dash_separated_job_details(parser: EvaluationParser) -> None:
    answer = "2. ATS Score\nScore: 7\n\n3. Job Details\nCompany - Globex\nPosition – Data Analyst\n"
    record = parser.parse(answer, EvaluationMode.JOB_MATCH)

    assert record.company_name == "Globex"
    assert record.role_name == "Data Analyst"
    assert record.match_status is MatchStatus.MATCHED
