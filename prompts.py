"""
Prompt templates for résumé evaluation and report insights.

The numbered headings requested here are the anchors the evaluation parser
searches for, so the two must change together.
"""

from __future__ import annotations

from typing import List

_RESUME_ONLY_TEMPLATE = """Analyze this resume and extract all relevant information. Format your response exactly as follows:

1. Career Summary
[Write a brief summary of the candidate's background]

2. ATS Score
Score: [number between 0-10]

3. Strengths and Weaknesses
Strengths: [List key strengths found in the resume]
Weaknesses: [List areas for improvement]

4. Suggestions to improve
[Provide improvement recommendations]

A. Work Experience
Matched Skills: [List actual work experience, job titles, companies, or write 'None' if no work experience found]

B. Certificates
Matched Skills: [List actual certificates, certifications, or write 'None' if no certificates found]

C. Projects
Matched Skills: [List actual projects, academic projects, or write 'None' if no projects found]

D. Technical Skills
Matched Skills: [List actual technical skills, programming languages, tools, or write 'None' if no technical skills found]

IMPORTANT: Look carefully through the resume text and extract real information. Only write 'None' if you cannot find any relevant information in that category.

Resume:
{resume}"""

_JOB_MATCH_TEMPLATE = """You are an ATS evaluator. Analyze the following resume against the job description and provide a structured response in exactly this format:

1. Career Summary
Provide a concise summary of the candidate's background and experience.

2. ATS Score out of 10
Provide a single number between 0 and 10 representing the overall job match score.
Format: 'Score: X' where X is the number.

3. Job Details
Company: [Extract the company name from the job description. If no company is mentioned, write 'Unknown Company']
Role: [Extract the job title/role from the job description. If no role is mentioned, write 'Unknown Role']
Match Status: [Write 'MATCHED' if the score above is 6 or more, otherwise 'UNMATCHED']

4. Strengths and Weaknesses
Strengths: [List the candidate's strengths relevant to THIS SPECIFIC JOB]
Weaknesses: [List the candidate's weaknesses or gaps for THIS SPECIFIC JOB]

5. Suggestions to improve
Provide specific recommendations to improve match for THIS JOB.

{skill_sections}

IMPORTANT FORMATTING RULES:
1. Use square brackets [ ] around lists of items
2. Separate multiple items with commas within the brackets
3. If nothing matches or there are no gaps, write [None]
4. Focus on skills and experience that directly relate to the job requirements
5. Calculate Match Status from the ATS score you provided above

EXAMPLE FORMAT:
2. ATS Score out of 10
Score: 8

3. Job Details
Company: [Google Inc]
Role: [Senior Software Engineer]
Match Status: [MATCHED]

A. Work Experience
Matched Skills: [Java development, Spring Framework, REST APIs]
Gaps: [No experience with microservices]

Resume:
{resume}

Job Description:
{job_description}"""

_SKILL_SECTIONS = (
    ("A. Work Experience", "skills from work experience", "work experience requirements"),
    ("B. Certificates", "relevant certificates", "certificate requirements"),
    ("C. Projects", "relevant project skills", "project requirements"),
    ("D. Technical Skills", "technical skills", "technical skills"),
)

_JOB_SUMMARY_TEMPLATE = """Summarize the following job description in about 100 words, formatted as 4-5 lines. Focus on:
1. Key responsibilities and duties
2. Required skills and qualifications
3. Experience level and seniority
4. Industry or domain focus

Do not include any introductory phrases. Each line should be a complete thought.

Job Description:
{job_description}"""

_IMPROVEMENT_TEMPLATE = """Based on the following job description and resume analysis, provide specific, actionable improvement suggestions to increase the ATS match score.

JOB DESCRIPTION:
{job_description}

RESUME ANALYSIS:
Current ATS Score: {score:.1f}/10
{analysis}
Format your response as follows:
TO IMPROVE MATCH SCORE (Current: {score:.1f}/10):
=====================================

Then provide 5-7 concise suggestions in bullet point format."""


def build_resume_only_prompt(resume_text: str) -> str:
    """Prompt for a standalone résumé review with no job attached."""
    return _RESUME_ONLY_TEMPLATE.format(resume=resume_text)


def build_job_match_prompt(resume_text: str, job_description: str) -> str:
    """
    Prompt for evaluating a résumé against one job description.

    Args:
        resume_text: Extracted résumé text.
        job_description: Sanitized job description.

    Returns:
        Rendered prompt.
    """
    sections: List[str] = []
    for heading, matched, gaps in _SKILL_SECTIONS:
        sections.append(
            f"{heading}\n"
            f"Matched Skills: [List {matched} that match THIS JOB'S requirements]\n"
            f"Gaps: [List missing {gaps} for THIS JOB]"
        )
    return _JOB_MATCH_TEMPLATE.format(
        skill_sections="\n\n".join(sections),
        resume=resume_text,
        job_description=job_description,
    )


def build_job_summary_prompt(job_description: str) -> str:
    return _JOB_SUMMARY_TEMPLATE.format(job_description=job_description)


def build_improvement_prompt(job_description: str, score: float, analysis_lines: List[str]) -> str:
    analysis = "\n".join(analysis_lines) + ("\n" if analysis_lines else "")
    return _IMPROVEMENT_TEMPLATE.format(job_description=job_description, score=score, analysis=analysis)
