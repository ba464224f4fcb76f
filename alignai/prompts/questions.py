"""AI-personalized discovery questions with a guaranteed catalog fallback.

get_personalized_questions() must degrade gracefully: whenever the
completion call fails or yields no bullet lines, the caller gets the
catalog's default questions for the category, element for element.
"""

from __future__ import annotations

import logging
import re

from alignai.db.models import SectionCategory
from alignai.errors import LLMProviderError
from alignai.pipeline.completion import CompletionProvider
from alignai.pipeline.parsing import parse_string_list
from alignai.prompts.catalog import get_questions, get_system_prompt, resolve_category
from alignai.prompts.templates import build_follow_up_prompt, build_personalized_questions_prompt

logger = logging.getLogger(__name__)

# Bullet markers accepted at the start of a question line. Dash and star need
# a following space so "**bold**" headings and "---" rules are not bullets.
_BULLET_RE = re.compile(r"^\s*(?:•\s*|[-*]\s+)(?=.*\w)")
# Numbered or bulleted lines for follow-up scraping ("1.", "2)", "- ", "* ")
_LIST_LINE_RE = re.compile(r"^\s*(?:\d+[.)]\s*|•\s*|[-*]\s+)(?=.*\w)")

_FOLLOW_UP_MIN_LENGTH = 10
_FOLLOW_UP_MAX = 3


def parse_bullet_lines(text: str) -> list[str]:
    """Return the text of every bullet/dash-prefixed line, prefix stripped."""
    questions = []
    for line in text.splitlines():
        if not _BULLET_RE.match(line):
            continue
        question = _BULLET_RE.sub("", line, count=1).strip()
        if question:
            questions.append(question)
    return questions


async def get_personalized_questions(
    category: SectionCategory | str,
    project_context: str | None,
    completion: CompletionProvider,
) -> list[str]:
    """Tailor the discovery questions for *category* to the project.

    Args:
        category:        Section category (validated; unknown raises UnknownCategoryError).
        project_context: Free-text description of the project.  Blank → defaults.
        completion:      Completion provider used for the single personalization call.

    Returns:
        The parsed questions, or the catalog defaults on any provider failure
        or when no bullet lines could be parsed.
    """
    category = resolve_category(category)
    defaults = get_questions(category)

    if not project_context or not project_context.strip():
        return defaults

    try:
        text = await completion.complete(
            get_system_prompt(category),
            build_personalized_questions_prompt(category, project_context.strip()),
        )
    except LLMProviderError as exc:
        logger.warning(
            "Personalized questions: provider error for %s: using defaults (%s)",
            category.value,
            exc,
        )
        return defaults

    questions = parse_bullet_lines(text)
    if not questions:
        logger.info(
            "Personalized questions: no bullet lines in model output for %s: using defaults",
            category.value,
        )
        return defaults
    return questions


async def generate_follow_up_questions(
    category: SectionCategory | str,
    user_response: str,
    completion: CompletionProvider,
) -> list[str]:
    """Suggest 2-3 follow-up questions that deepen *user_response*.

    Prefers a JSON array in the model output; otherwise scrapes numbered or
    bulleted lines longer than 10 characters, keeping at most 3.  Provider
    failure returns an empty list since follow-ups are optional.
    """
    category = resolve_category(category)
    try:
        text = await completion.complete(
            get_system_prompt(category),
            build_follow_up_prompt(category, user_response),
            temperature=0.8,
        )
    except LLMProviderError as exc:
        logger.warning("Follow-up questions: provider error for %s: %s", category.value, exc)
        return []

    parsed = parse_string_list(text)
    if parsed is not None:
        return parsed

    scraped = []
    for line in text.splitlines():
        if not _LIST_LINE_RE.match(line):
            continue
        question = _LIST_LINE_RE.sub("", line, count=1).strip()
        if len(question) > _FOLLOW_UP_MIN_LENGTH:
            scraped.append(question)
    return scraped[:_FOLLOW_UP_MAX]
