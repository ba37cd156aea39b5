"""
Prompt templates for the three content kinds: path plan, lesson, quiz.
Templates render through the core PromptTemplate. Free-text inputs are cut
to a bounded prefix first so prompt size stays bounded.
"""

from __future__ import annotations

from agents.core.prompt_builder import PromptTemplate, bounded_prefix
from agents.feynman_agent.schemas import Checkpoint, LessonMode

NOTES_PREFIX_LIMIT = 500
LESSON_PREFIX_LIMIT = 2000
QUIZ_QUESTION_COUNT = 3
PLAN_MIN_CHECKPOINTS = 3
PLAN_MAX_CHECKPOINTS = 5

TEMPLATE_PLAN = PromptTemplate(
    'Create a structured learning path for the topic: "{topic}". \n'
    "    Context: {notes}.\n"
    "    Break into {min_count}-{max_count} sequential checkpoints with \"title\" and \"objective\"."
)

TEMPLATE_LESSON = PromptTemplate(
    "TOPIC: {topic}, CHECKPOINT: {title}, OBJECTIVE: {objective}. "
    "{mode_instruction} Synthesize the core concepts into well-formatted Markdown."
)

TEMPLATE_QUIZ = PromptTemplate('Create {count} multiple-choice questions for this content: "{content}".')

MODE_INSTRUCTIONS = {
    LessonMode.SIMPLIFIED: (
        "ACTIVATE FEYNMAN MODE: Explain like I am 12, use simple analogies, avoid jargon. "
        "Use tables where appropriate for data comparison. Keep it concise but thorough."
    ),
    LessonMode.STANDARD: (
        "STANDARD ACADEMIC: Professional, structured, comprehensive explanation. "
        "Use tables for summary comparisons where helpful."
    ),
}


def build_plan_prompt(topic: str, notes: str | None) -> str:
    return TEMPLATE_PLAN.render(
        topic=topic,
        notes=bounded_prefix(notes, NOTES_PREFIX_LIMIT),
        min_count=PLAN_MIN_CHECKPOINTS,
        max_count=PLAN_MAX_CHECKPOINTS,
    )


def build_lesson_prompt(topic: str, checkpoint: Checkpoint, mode: LessonMode) -> str:
    return TEMPLATE_LESSON.render(
        topic=topic,
        title=checkpoint.title,
        objective=checkpoint.objective,
        mode_instruction=MODE_INSTRUCTIONS[mode],
    )


def build_quiz_prompt(lesson_content: str) -> str:
    return TEMPLATE_QUIZ.render(
        count=QUIZ_QUESTION_COUNT,
        content=bounded_prefix(lesson_content, LESSON_PREFIX_LIMIT),
    )
