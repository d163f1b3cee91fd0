"""
Report writers: JSON exports, the XLSX job summary and the HTML ranking dashboard.
"""

from __future__ import annotations

import json
import logging
from html import escape
from pathlib import Path
from typing import Any, Dict, List, Optional

import openpyxl
from openpyxl.styles import Alignment, Font

from data_models import BatchReport, EvaluationRecord, JobReport

LOGGER = logging.getLogger(__name__)


def _write_json(payload: Any, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def write_report_json(report: BatchReport, output_path: Path) -> None:
    """
    Persist a batch ranking to JSON.

    Args:
        report: Result of RankingEngine.evaluate_batch.
        output_path: Destination file path.
    """
    _write_json(report.to_dict(), output_path)
    LOGGER.info("Wrote ranking JSON to %s", output_path)


def write_single_json(records: List[EvaluationRecord], output_path: Path) -> None:
    """Persist unranked evaluations (résumé-only reviews) to JSON."""
    _write_json([record.to_dict() for record in records], output_path)
    LOGGER.info("Wrote evaluation JSON to %s", output_path)


def _multiline(text: str) -> str:
    return escape(text).replace("\n", "<br>")


def _job_row(job: JobReport) -> str:
    posting = job.posting
    best = job.report.best_match
    link = (
        f'<a href="{escape(posting.apply_link)}" target="_blank">Apply</a>'
        if posting.apply_link.startswith(("http://", "https://"))
        else escape(posting.apply_link)
    )
    if best is not None:
        best_cells = (
            f"<td>{best.ats_score:.1f}</td>"
            f"<td>{escape(best.candidate_name)}</td>"
            f"<td>{escape(best.new_candidate_label or '')}</td>"
        )
    else:
        best_cells = "<td>0.0</td><td>No successful evaluation</td><td></td>"
    errors = "<br>".join(escape(f"{e.candidate_name}: {e.message}") for e in job.errors)
    row_class = ' class="highlight"' if best is not None else ""
    return (
        f"<tr{row_class}>"
        f"<td>{job.job_index + 1}</td>"
        f"<td>{escape(posting.company_name or (best.company_name if best else '') or '')}</td>"
        f"<td>{escape(posting.role_name or (best.role_name if best else '') or '')}</td>"
        f"<td>{link}</td>"
        f"{best_cells}"
        f"<td>{_multiline(job.all_scores)}</td>"
        f"<td>{_multiline(job.insights.get('summary', ''))}</td>"
        f"<td>{_multiline(job.insights.get('improvements', ''))}</td>"
        f"<td>{errors}</td>"
        "</tr>"
    )


def _overview(report: BatchReport) -> Dict[str, str]:
    overall = report.overall
    return {
        "Candidates": str(report.total_candidates),
        "Jobs": str(report.total_jobs),
        "Matched": str(report.total_matched),
        "Unmatched": str(report.total_unmatched),
        "Average best score": f"{overall.average_score:.2f}",
        "Highest": f"{overall.highest_score:.2f}",
        "Lowest": f"{overall.lowest_score:.2f}",
    }


def write_html_summary(report: BatchReport, output_path: Path) -> None:
    """
    Generate an interactive HTML dashboard with one row per job.

    Args:
        report: Result of RankingEngine.evaluate_batch.
        output_path: Destination HTML file path.
    """
    rows = "".join(_job_row(job) for job in report.jobs)
    overview = " &middot; ".join(f"{escape(k)}: {escape(v)}" for k, v in _overview(report).items())

    html = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Resume Ranking Dashboard</title>
    <script src="https://code.jquery.com/jquery-3.7.1.min.js" integrity="sha256-/JqT3SQfawRcv/BIHPThkBvs0OEvtFFmqPF/lYI/Cxo=" crossorigin="anonymous"></script>
    <link rel="stylesheet" href="https://cdn.datatables.net/1.13.7/css/jquery.dataTables.min.css">
    <script src="https://cdn.datatables.net/1.13.7/js/jquery.dataTables.min.js"></script>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 2rem; background-color: #f7f1ec; }}
        h1, .info {{ color: #677472; }}
        table {{ border-collapse: collapse; width: 100%; background-color: white; }}
        th, td {{ border: 1px solid #e0e0e0; padding: 10px; text-align: left; vertical-align: top; }}
        th {{ background-color: #677472; color: white; }}
        .highlight {{ border-left: 3px solid #677472; }}
        td:nth-child(8), td:nth-child(9), td:nth-child(10) {{ max-width: 360px; word-wrap: break-word; }}
        a {{ color: #677472; font-weight: 500; }}
    </style>
</head>
<body>
    <h1>Resume Ranking Dashboard</h1>
    <p class="info">{overview}</p>
    <table id="rankingTable">
        <thead>
            <tr>
                <th>#</th>
                <th>Company</th>
                <th>Role</th>
                <th>Apply</th>
                <th>Best Score</th>
                <th>Best Resume</th>
                <th>New Label</th>
                <th>All Scores</th>
                <th>Job Summary</th>
                <th>Improvements</th>
                <th>Errors</th>
            </tr>
        </thead>
        <tbody>
            {rows}
        </tbody>
    </table>
    <script>
        $(document).ready(function() {{
            $('#rankingTable').DataTable({{
                order: [[4, 'desc']],
                pageLength: 25,
                columnDefs: [{{ targets: [0, 4], type: 'num' }}]
            }});
        }});
    </script>
</body>
</html>"""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")
    LOGGER.info("Wrote HTML summary to %s", output_path)


XLSX_HEADERS = (
    "Company Name",
    "Job Role",
    "Apply Link",
    "Job Description Summary",
    "Improvement Suggestions",
    "Best Match Resume",
    "ATS Score",
    "ATS Result",
    "New Resume Name",
    "All Resume Scores",
)


def ats_result_summary(record: Optional[EvaluationRecord]) -> str:
    """Short plain-text analysis of a job winner for the XLSX summary."""
    if record is None:
        return "No analysis available"
    lines = [f"ATS Score: {record.ats_score:.1f}/10"]
    sections = (
        ("Strengths", record.strengths),
        ("Work Experience Skills", record.work_experience.matched_skills),
        ("Technical Skills", record.technical_skills.matched_skills),
        ("Project Experience", record.projects.matched_skills),
        ("Certifications", record.certificates.matched_skills),
    )
    for label, items in sections:
        if items and items != ["None"]:
            lines.append(f"{label}: {', '.join(items)}")
    lines.append(f"Career Summary: {record.career_summary}")
    return "\n".join(lines)


def _xlsx_row(job: JobReport) -> List[Any]:
    posting = job.posting
    best = job.report.best_match
    return [
        posting.company_name or (best.company_name if best else None) or "N/A",
        posting.role_name or (best.role_name if best else None) or "N/A",
        posting.apply_link or "N/A",
        job.insights.get("summary") or "N/A",
        job.insights.get("improvements") or "N/A",
        best.candidate_name if best else "No match found",
        best.ats_score if best else 0.0,
        ats_result_summary(best),
        (best.new_candidate_label if best else None) or "N/A",
        job.all_scores or "N/A",
    ]


def write_xlsx_summary(report: BatchReport, output_path: Path) -> None:
    """
    Write one spreadsheet row per job with its winner and all scores.

    Args:
        report: Result of RankingEngine.evaluate_batch.
        output_path: Destination .xlsx file path.
    """
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Job Matches"
    sheet.append(list(XLSX_HEADERS))
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for job in report.jobs:
        sheet.append(_xlsx_row(job))
    for row in sheet.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = Alignment(wrap_text=True, vertical="top")
    for column in "ABCDEFGHIJ":
        sheet.column_dimensions[column].width = 30

    output_path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output_path)
    LOGGER.info("Wrote XLSX summary to %s", output_path)
