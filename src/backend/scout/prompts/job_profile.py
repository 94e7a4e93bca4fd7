"""Prompt templates for extracting a structured job profile from a posting."""

from scout.models.parsing import JOB_PROFILE_VERSION

POSTING_TEXT_LIMIT = 12_000

SYSTEM_PROMPT = f"""\
You are a senior technical recruiter. Extract structured hiring criteria from \
the job posting and respond with minified JSON matching this structure:

{{
  "version": "{JOB_PROFILE_VERSION}",
  "summary": "<overview of the role, at most 400 characters>",
  "mustHaveSkills": ["skill"],
  "niceToHaveSkills": ["skill"],
  "softSkills": ["skill"],
  "targetTitles": ["role title"],
  "responsibilities": ["short responsibility"],
  "requiredExperienceYears": <integer or null>,
  "preferredExperienceYears": <integer or null>,
  "domainKeywords": ["industry or product context"],
  "certifications": ["certification"],
  "locationConstraints": "<string or null>",
  "disqualifiers": ["factor that rules a candidate out"],
  "toolsAndTech": ["tool, platform or framework"]
}}

Rules:
- Keep every list to 12 items or fewer, with short wording.
- Use null for years that the posting does not state.
- Disqualifiers cover clearance, visa, location, shift and similar hard limits.
- Paraphrase the requirements in the summary; do not copy the posting.
- Output ONLY valid JSON. No markdown, no extra text."""

USER_PROMPT_TEMPLATE = """\
Job posting:
<<<JOB_POSTING
{posting_text}
JOB_POSTING"""


def build_posting_text(
    title: str,
    description: str | None = None,
    requirements: str | None = None,
    company_name: str | None = None,
    employment_type: str | None = None,
    location: str | None = None,
) -> str:
    """Flatten posting fields into one labelled block, capped for the prompt."""
    segments = [
        f"ROLE TITLE: {title}",
        f"COMPANY: {company_name}" if company_name else None,
        f"EMPLOYMENT TYPE: {employment_type}" if employment_type else None,
        f"LOCATION: {location}" if location else None,
        f"JOB DESCRIPTION:\n{description}" if description else None,
        f"REQUIREMENTS:\n{requirements}" if requirements else None,
    ]
    return "\n\n".join(segment for segment in segments if segment)[:POSTING_TEXT_LIMIT]


def build_job_profile_prompt(posting_text: str) -> tuple[str, str]:
    """Returns (system_prompt, user_prompt)."""
    return SYSTEM_PROMPT, USER_PROMPT_TEMPLATE.format(posting_text=posting_text)
