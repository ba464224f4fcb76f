"""User-prompt builders for the LLM-backed pipeline stages.

Every builder that expects structured output spells out the exact JSON shape
the parser in alignai.pipeline.parsing validates against.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from alignai.db.models import SectionCategory
from alignai.prompts.catalog import get_follow_up_prompt, resolve_category

NOT_SPECIFIED = "Not specified"

# PRD prompt headings, in document order
_PRD_HEADINGS = (
    (SectionCategory.problem, "PROBLEM"),
    (SectionCategory.target_users, "TARGET USERS"),
    (SectionCategory.vision, "VISION & SOLUTION"),
    (SectionCategory.features, "KEY FEATURES"),
    (SectionCategory.competitors, "COMPETITORS"),
    (SectionCategory.differentiation, "DIFFERENTIATION"),
    (SectionCategory.tech_stack, "TECH STACK"),
)


def build_personalized_questions_prompt(category: SectionCategory | str, project_context: str) -> str:
    return (
        f"{get_follow_up_prompt(category)}\n\n"
        f"Project context: {project_context}\n\n"
        "Generate 4-5 specific, thoughtful questions that will help the team think deeply "
        "about this aspect of their product. Return only the questions, one per line, "
        "starting with a bullet point."
    )


def build_follow_up_prompt(category: SectionCategory | str, user_response: str) -> str:
    return (
        f"{get_follow_up_prompt(category)}\n\n"
        f"User's response:\n\"{user_response}\"\n\n"
        "Provide 2-3 specific, actionable follow-up questions that would help deepen their thinking.\n"
        "Format as a JSON array of strings."
    )


def build_conflict_analysis_prompt(
    category: SectionCategory | str,
    responses: Iterable[tuple[str, str]],
) -> str:
    """Build the conflict-analysis prompt.

    Args:
        category:  Section category the responses answer.
        responses: ``(display_name, content)`` pairs in submission order.
    """
    category = resolve_category(category)
    responses_text = "\n\n".join(
        f"Response {i} ({name}):\n\"{content}\""
        for i, (name, content) in enumerate(responses, start=1)
    )
    return (
        f"Analyze these team members' responses for the \"{category.value}\" section and "
        "identify any conflicts or misalignments.\n\n"
        f"{responses_text}\n\n"
        "Provide your analysis in the following JSON format:\n"
        "{\n"
        '  "has_conflict": true/false,\n'
        '  "conflict_severity": "low" | "medium" | "high",\n'
        '  "differences": ["list of specific differences"],\n'
        '  "areas_of_agreement": ["list of areas where team agrees"],\n'
        '  "suggested_merge": "A synthesized version that reconciles differences",\n'
        '  "reasoning": "Explanation of the conflicts and how the merge addresses them"\n'
        "}"
    )


def build_consensus_prompt(
    category: SectionCategory | str,
    responses: Iterable[tuple[str, str]],
    known_differences: Iterable[str] = (),
) -> str:
    """Build the consensus-synthesis prompt.

    *known_differences* come from a prior conflict analysis and are listed so
    the merge addresses them explicitly.
    """
    category = resolve_category(category)
    responses_text = "\n\n".join(f"{name}:\n\"{content}\"" for name, content in responses)

    differences = list(known_differences)
    differences_text = ""
    if differences:
        bullet_list = "\n".join(f"- {d}" for d in differences)
        differences_text = f"Known differences between these responses:\n{bullet_list}\n\n"

    return (
        f"Create a consensus statement for the \"{category.value}\" section based on these "
        "team members' inputs.\n\n"
        f"{responses_text}\n\n"
        f"{differences_text}"
        "Your goal is to synthesize these perspectives into a single, clear statement that:\n"
        "1. Captures the core ideas from all responses\n"
        "2. Resolves any contradictions by finding common ground\n"
        "3. Preserves important nuances and specific details\n"
        "4. Is concise and actionable\n\n"
        "Provide your response in this JSON format:\n"
        "{\n"
        '  "merged_content": "The consensus statement",\n'
        '  "reasoning": "Explanation of how you synthesized the responses",\n'
        '  "confidence": 0.0-1.0 (how confident you are in this consensus)\n'
        "}"
    )


def build_prd_prompt(sections: Mapping[SectionCategory, str]) -> str:
    """Build the PRD prompt from per-category consensus text."""
    blocks = "\n\n".join(
        f"{heading}:\n{sections.get(category) or NOT_SPECIFIED}"
        for category, heading in _PRD_HEADINGS
    )
    return (
        "Generate a professional Product Requirement Document based on this team's consensus.\n\n"
        f"{blocks}\n\n"
        "Create a comprehensive PRD in markdown format with the following sections:\n"
        "1. Executive Summary\n"
        "2. Problem Statement\n"
        "3. Target Users\n"
        "4. Product Vision\n"
        "5. Key Features\n"
        "6. Competitive Analysis\n"
        "7. Unique Value Proposition\n"
        "8. Technical Approach\n"
        "9. Success Metrics (suggest relevant metrics)\n"
        "10. Risks and Mitigations (identify potential risks)\n\n"
        "Make it professional, specific, and actionable for a development team."
    )
