"""Prompt templates for auditing deterministic skill matches."""

RESUME_TEXT_LIMIT = 12_000

SYSTEM_PROMPT = """\
You verify resume evidence. Respond ONLY with JSON of the shape \
{"extraMustHave": ["skill"], "extraNiceToHave": ["skill"], "extraTools": ["tool"]}. \
Do not invent skills: list only items that appear both in the resume text and \
in the provided job profile lists."""

USER_PROMPT_TEMPLATE = """\
Confirm profile items that explicitly appear in the resume but are missing \
from the manual matches. Return empty arrays when the manual lists already \
cover everything.

{profile_lists}

{manual_lists}

Resume:
{resume_text}"""


def list_section(title: str, items: list[str]) -> str:
    body = "\n".join(f"- {item}" for item in items) if items else "- (none)"
    return f"{title}:\n{body}"


def truncate_resume(text: str, limit: int = RESUME_TEXT_LIMIT) -> str:
    return f"{text[:limit]}\n...[truncated]" if len(text) > limit else text


def build_skill_verification_prompt(
    resume_text: str,
    must_have: list[str],
    nice_to_have: list[str],
    tools: list[str],
    manual_must_have: list[str],
    manual_nice_to_have: list[str],
    manual_tools: list[str],
) -> tuple[str, str]:
    """Returns (system_prompt, user_prompt)."""
    profile_lists = "\n".join(
        [
            list_section("Job profile must-have skills", must_have),
            list_section("Job profile nice-to-have skills", nice_to_have),
            list_section("Job profile tools & tech", tools),
        ]
    )
    manual_lists = "\n".join(
        [
            list_section("Manual must-have matches", manual_must_have),
            list_section("Manual nice-to-have matches", manual_nice_to_have),
            list_section("Manual tools matches", manual_tools),
        ]
    )
    user_prompt = USER_PROMPT_TEMPLATE.format(
        profile_lists=profile_lists,
        manual_lists=manual_lists,
        resume_text=truncate_resume(resume_text),
    )
    return SYSTEM_PROMPT, user_prompt
