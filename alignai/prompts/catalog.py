"""Static prompt catalog: one discovery template per section category.

Each category maps to a system instruction, an ordered list of default
discovery questions, and a follow-up instruction used when the questions are
personalized from project context.  The mapping is read-only; lookups for a
value outside SectionCategory raise UnknownCategoryError.

Exports: PromptTemplate, SectionInfo, SYSTEM_PROMPTS, SECTION_PROMPTS,
SECTION_INFO, resolve_category, get_questions, get_system_prompt,
get_follow_up_prompt, get_prompt_catalog_entry
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from alignai.db.models import SectionCategory
from alignai.errors import UnknownCategoryError


@dataclass(frozen=True)
class PromptTemplate:
    system_prompt: str
    questions: tuple[str, ...]
    follow_up_prompt: str


@dataclass(frozen=True)
class SectionInfo:
    title: str
    description: str


SYSTEM_PROMPTS = MappingProxyType({
    "discovery_guide": (
        "You are an expert product mentor helping teams define their product vision.\n"
        "Your role is to ask insightful questions that help teams think deeply about their "
        "users, problems, and solutions.\n"
        "Be concise, friendly, and constructive. Help teams avoid common pitfalls like "
        "building solutions without understanding the problem."
    ),
    "conflict_analyzer": (
        "You are an expert at identifying misalignments in team thinking.\n"
        "Analyze multiple team members' responses and identify semantic differences, even "
        "when wording is similar.\n"
        "Be objective and constructive. Highlight both differences and areas of agreement."
    ),
    "consensus_builder": (
        "You are a skilled facilitator helping teams reach consensus.\n"
        "Given multiple perspectives, synthesize them into a clear, unified statement that "
        "captures the best of each viewpoint.\n"
        "Preserve important nuances while removing contradictions."
    ),
    "prd_writer": (
        "You are an experienced product manager creating Product Requirement Documents.\n"
        "Transform team consensus into clear, actionable PRDs that developers and "
        "stakeholders can understand.\n"
        "Be specific, structured, and professional."
    ),
})

_GUIDE = SYSTEM_PROMPTS["discovery_guide"]

SECTION_PROMPTS: MappingProxyType[SectionCategory, PromptTemplate] = MappingProxyType({
    SectionCategory.problem: PromptTemplate(
        system_prompt=_GUIDE,
        questions=(
            "What specific problem are you trying to solve?",
            "Who experiences this problem most acutely?",
            "How do people currently deal with this problem?",
            "What makes this problem worth solving now?",
            "What happens if this problem isn't solved?",
        ),
        follow_up_prompt=(
            "Based on the problem described, what follow-up questions would help the team\n"
            "clarify and validate their problem statement? Provide 2-3 specific questions."
        ),
    ),
    SectionCategory.target_users: PromptTemplate(
        system_prompt=_GUIDE,
        questions=(
            "Who exactly will use your product? Be specific about demographics, roles, or characteristics.",
            "What are the key pain points or needs of these users?",
            "How do these users currently spend their time related to this problem?",
            "What motivates these users to seek a solution?",
            "Are there different user segments with different needs?",
        ),
        follow_up_prompt=(
            "Based on the target users described, what additional questions would help\n"
            "the team develop clearer user personas? Provide 2-3 specific questions."
        ),
    ),
    SectionCategory.vision: PromptTemplate(
        system_prompt=_GUIDE,
        questions=(
            "What is your product vision in one sentence?",
            "How will your product solve the problem you identified?",
            "What does success look like for your users?",
            "What's the core value proposition?",
            "How will users' lives be different after using your product?",
        ),
        follow_up_prompt=(
            "Based on the vision described, what questions would help the team\n"
            "articulate a clearer, more compelling product vision? Provide 2-3 specific questions."
        ),
    ),
    SectionCategory.features: PromptTemplate(
        system_prompt=_GUIDE,
        questions=(
            "What are the essential features needed to solve the core problem? (List 3-5)",
            "Which single feature would provide the most value to users?",
            "What features are nice-to-have but not critical for MVP?",
            "Are there features that differentiate you from alternatives?",
            "What's the minimum set of features needed to test your hypothesis?",
        ),
        follow_up_prompt=(
            "Based on the features described, what questions would help the team\n"
            "prioritize features and identify the true MVP? Provide 2-3 specific questions."
        ),
    ),
    SectionCategory.competitors: PromptTemplate(
        system_prompt=_GUIDE,
        questions=(
            "Who are your main competitors or alternatives?",
            "How do users currently solve this problem without your product?",
            "What do existing solutions do well?",
            "What are the gaps or weaknesses in current solutions?",
            "Why would someone choose your product over alternatives?",
        ),
        follow_up_prompt=(
            "Based on the competitive landscape described, what questions would help\n"
            "the team better understand their competitive position? Provide 2-3 specific questions."
        ),
    ),
    SectionCategory.differentiation: PromptTemplate(
        system_prompt=_GUIDE,
        questions=(
            "What makes your product unique?",
            "What can you do that competitors can't or won't do?",
            "What's your unfair advantage?",
            "Why would users switch from their current solution to yours?",
            "What would users lose if your product didn't exist?",
        ),
        follow_up_prompt=(
            "Based on the differentiation described, what questions would help the team\n"
            "sharpen their unique value proposition? Provide 2-3 specific questions."
        ),
    ),
    SectionCategory.tech_stack: PromptTemplate(
        system_prompt=_GUIDE,
        questions=(
            "What technologies or platforms are you considering?",
            "What are the key technical requirements or constraints?",
            "What's your team's technical expertise?",
            "Do you need to integrate with existing systems?",
            "What are your performance, scale, or security requirements?",
        ),
        follow_up_prompt=(
            "Based on the technical approach described, what questions would help the team\n"
            "make better technology decisions? Provide 2-3 specific questions."
        ),
    ),
})

SECTION_INFO: MappingProxyType[SectionCategory, SectionInfo] = MappingProxyType({
    SectionCategory.problem: SectionInfo("Problem Statement", "Define the core problem you're solving"),
    SectionCategory.target_users: SectionInfo("Target Users", "Identify who will use your product"),
    SectionCategory.vision: SectionInfo("Vision & Solution", "Articulate your product vision"),
    SectionCategory.features: SectionInfo("Key Features", "List essential product features"),
    SectionCategory.competitors: SectionInfo("Competitors", "Analyze the competitive landscape"),
    SectionCategory.differentiation: SectionInfo("Differentiation", "Define your unique value proposition"),
    SectionCategory.tech_stack: SectionInfo("Tech Stack", "Plan your technical approach"),
})


def resolve_category(category: SectionCategory | str) -> SectionCategory:
    """Coerce a string or enum member to SectionCategory.

    Raises:
        UnknownCategoryError: If the value is not one of the fixed categories.
    """
    if isinstance(category, SectionCategory):
        return category
    try:
        return SectionCategory(category)
    except ValueError:
        raise UnknownCategoryError(category) from None


def get_questions(category: SectionCategory | str) -> list[str]:
    """Return a fresh copy of the default discovery questions for *category*."""
    return list(SECTION_PROMPTS[resolve_category(category)].questions)


def get_system_prompt(category: SectionCategory | str) -> str:
    return SECTION_PROMPTS[resolve_category(category)].system_prompt


def get_follow_up_prompt(category: SectionCategory | str) -> str:
    return SECTION_PROMPTS[resolve_category(category)].follow_up_prompt


def get_prompt_catalog_entry(category: SectionCategory | str) -> dict:
    """Return ``{"system_prompt", "questions"}`` for *category*."""
    template = SECTION_PROMPTS[resolve_category(category)]
    return {
        "system_prompt": template.system_prompt,
        "questions": list(template.questions),
    }
