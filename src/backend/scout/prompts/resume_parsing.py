"""Prompt templates for parsing a resume against a job.

The model extracts candidate facts and lines them up with the job profile; the
final match score is computed by the service, so the model is asked for a
placeholder match score only.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scout.services.job_profile_service import JobContext

LIST_PREVIEW_LIMIT = 8

SYSTEM_PROMPT = """\
You are an expert resume parser. Return minified JSON with exactly four root \
keys: "resume", "scores", "analysis", "summary". All four are required.

Rules:
- Scalar fields (name, linkedinUrl, currentLocation, title, startDate, endDate, \
employmentType) are always present; use null when unknown, never arrays, \
objects or empty strings.
- Dates are "YYYY" or "YYYY-MM"; ongoing roles get endDate null.
- emails, phones, skills, education, employment and skillExperience are arrays; \
use [] when there is nothing to report.
- scores.matchScore is 0 (the system computes it); companyScore and fakeScore \
are integers 0-100. Use about 50 for companyScore when reputation is unclear.
- summary is a single string of at most 140 characters.
- Use only facts from the job text and resume text. Do not invent anything.
- Keep it short: at most 10 employment entries and 30 skills.
- Output ONLY valid JSON. No markdown, no extra text."""

SCHEMA_BLOCK = """\
{
  "resume": {
    "candidate": {"name": "string|null", "emails": ["string"], "phones": ["string"],
      "linkedinUrl": "string|null", "currentLocation": "string|null", "totalExperienceYears": 0},
    "skills": ["string"],
    "education": [{"degree": "string", "institution": "string|null", "year": "string|null"}],
    "employment": [{"company": "string", "title": "string|null", "startDate": "YYYY[-MM]|null",
      "endDate": "YYYY[-MM]|null", "employmentType": "string|null"}],
    "skillExperience": [{"skill": "string", "months": 0, "confidence": 0.5,
      "evidence": "string|null", "lastUsed": "YYYY[-MM]|null"}],
    "notes": "string|null"
  },
  "scores": {"matchScore": 0, "companyScore": 0, "fakeScore": 0},
  "analysis": {
    "mustHaveSkillsMatched": ["string"], "mustHaveSkillsMissing": ["string"],
    "niceToHaveSkillsMatched": ["string"], "targetTitlesMatched": ["string"],
    "responsibilitiesMatched": ["string"], "toolsAndTechMatched": ["string"],
    "domainKeywordsMatched": ["string"], "certificationsMatched": ["string"],
    "disqualifiersDetected": ["string"], "notes": "string|null"
  },
  "summary": "string"
}"""

USER_PROMPT_TEMPLATE = """\
JOB CONTEXT
Title: {job_title}

Summary:
{job_summary}

{profile_section}

DESCRIPTION EXCERPT:
<<<JOB_DESCRIPTION
{job_excerpt}
JOB_DESCRIPTION

SCHEMA (return exactly this object):
{schema}

ANALYSIS RULES:
- Use the exact wording of the job profile lists for matched and missing items.
- Disqualifiers list risk factors such as visa, location or missing documents.
- analysis.notes is at most 150 characters or null.

RESUME:
<<<RESUME_TEXT
{resume_text}
RESUME_TEXT"""

GENERIC_CONTEXT = "No job selected. Parse the resume on its own."


def format_list(items: list[str] | None, limit: int = LIST_PREVIEW_LIMIT) -> str:
    if not items:
        return "none"
    text = ", ".join(items[:limit])
    if len(items) > limit:
        text += ", ..."
    return text


def format_years(value: int | None) -> str:
    return "unspecified" if value is None else f"{value} years"


def build_profile_section(context: "JobContext | None") -> str:
    profile = context.job_profile if context else None
    if profile is None:
        return "PROFILE SNAPSHOT: none available. Use the summary and description excerpt."
    return "\n".join(
        [
            "PROFILE SNAPSHOT:",
            f"- Must-have skills: {format_list(profile.must_have_skills)}",
            f"- Nice-to-have skills: {format_list(profile.nice_to_have_skills)}",
            f"- Target titles: {format_list(profile.target_titles)}",
            f"- Responsibilities: {format_list(profile.responsibilities)}",
            f"- Tools & tech: {format_list(profile.tools_and_tech)}",
            f"- Domain keywords: {format_list(profile.domain_keywords)}",
            f"- Certifications: {format_list(profile.certifications)}",
            f"- Disqualifiers: {format_list(profile.disqualifiers)}",
            f"- Required experience: {format_years(profile.required_experience_years)}",
            f"- Preferred experience: {format_years(profile.preferred_experience_years)}",
            f"- Location constraints: {profile.location_constraints or 'unspecified'}",
        ]
    )


def build_resume_parse_prompt(resume_text: str, context: "JobContext | None" = None) -> tuple[str, str]:
    """Build system + user prompts for one parse call.

    Returns (system_prompt, user_prompt).
    """
    user_prompt = USER_PROMPT_TEMPLATE.format(
        job_title=context.job_title if context else "Unspecified",
        job_summary=context.job_description_short if context else GENERIC_CONTEXT,
        profile_section=build_profile_section(context),
        job_excerpt=context.job_description_excerpt if context else "",
        schema=SCHEMA_BLOCK,
        resume_text=resume_text,
    )
    return SYSTEM_PROMPT, user_prompt
