"""Prompt builders for the wizard tools and the wizard system prompt loader."""

from __future__ import annotations

import json
import logging
from typing import Any

from .config import WIZARD_SYSTEM_PROMPT_PATH

logger = logging.getLogger(__name__)

ANALYST_INSTRUCTIONS = (
    "You are a requirements analyst for LEIA creation. Extract structured information "
    "from user requests. Always respond with valid JSON."
)
EVALUATOR_INSTRUCTIONS = (
    "You are an expert evaluator. Your task is to evaluate component matches and provide "
    "detailed feedback. Always respond with valid JSON."
)
VALIDATOR_INSTRUCTIONS = (
    "You are a LEIA specification validator. Evaluate component coherence. "
    "Always respond with valid JSON."
)

_FALLBACK_SYSTEM_PROMPT = (
    "You are a LEIA Creation Wizard. Help the user assemble a persona, a problem and a "
    "behaviour, reusing catalog components when they fit and generating new ones otherwise."
)

_cached_prompt: str | None = None

_PRONOUN_FORMS = {
    "he/him": "he / him / his / his",
    "she/her": "she / her / hers / her",
    "they/them": "they / them / theirs / their",
}


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def get_wizard_system_prompt() -> str:
    """Return the wizard system prompt, cached after first read."""
    global _cached_prompt
    if _cached_prompt is None:
        try:
            _cached_prompt = WIZARD_SYSTEM_PROMPT_PATH.read_text(encoding="utf-8").strip()
        except OSError as e:
            logger.warning("Wizard system prompt not readable at %s: %s", WIZARD_SYSTEM_PROMPT_PATH, e)
            _cached_prompt = ""
    return _cached_prompt or _FALLBACK_SYSTEM_PROMPT


def build_requirements_prompt(user_prompt: str) -> str:
    return (
        "You are analyzing a user's request to create a LEIA (Learning Experience with Intelligent Agents).\n\n"
        f'User request:\n"{user_prompt}"\n\n'
        "Extract structured requirements: topic, difficulty (beginner/intermediate/advanced), "
        "teaching approach, persona characteristics, problem preferences, solution format "
        "(text/mermaid) and process type (requirements-elicitation/game).\n\n"
        "Respond with a JSON object:\n"
        "{\n"
        '  "topic": string,\n'
        '  "difficulty": "beginner" | "intermediate" | "advanced",\n'
        '  "approach": string,\n'
        '  "personaPreferences": {"personality": string, "emotionRange": string},\n'
        '  "problemPreferences": {"solutionFormat": "text" | "mermaid", "includeBackground": boolean},\n'
        '  "process": "requirements-elicitation" | "game",\n'
        '  "summary": string\n'
        "}"
    )


def build_match_prompt(component_type: str, spec: Any, requirements: dict[str, Any]) -> str:
    return (
        f"You are evaluating how well a LEIA {component_type} matches user requirements.\n\n"
        f"Component Details:\n{_dump(spec)}\n\n"
        f"User Requirements:\n{_dump(requirements)}\n\n"
        "Rate the match quality from 0-100 (90+ excellent, 70-89 good, 50-69 moderate, "
        "30-49 poor, below 30 very poor).\n\n"
        "Respond with a JSON object:\n"
        '{"score": number, "reasoning": string, "strengths": [string], "gaps": [string]}'
    )


def build_validation_prompt(persona: Any, problem: Any, behaviour: Any) -> str:
    return (
        "You are a LEIA specification validator. Evaluate if these components work together cohesively.\n\n"
        f"Persona:\n{_dump(persona)}\n\n"
        f"Problem:\n{_dump(problem)}\n\n"
        f"Behaviour:\n{_dump(behaviour)}\n\n"
        "Check topic alignment, process compatibility, difficulty appropriateness and overall coherence.\n\n"
        "Respond with a JSON object:\n"
        '{"valid": boolean, "score": number, "issues": [string], "suggestions": [string], "summary": string}'
    )


def build_persona_prompt(
    name: str | None,
    personality: str,
    pronouns: str,
    topic: str,
    emotion_range: str | None,
) -> tuple[str, str]:
    system = (
        "You are a LEIA persona designer. Create detailed persona specifications "
        "following the exact LEIA Designer structure."
    )
    user = (
        "Create a detailed persona specification following the LEIA Designer format.\n\n"
        "Requirements:\n"
        f"- First name: {name or 'Generate an appropriate first name'}\n"
        f"- Personality: {personality}\n"
        f"- Topic expertise: {topic}\n"
        f"- Pronouns: {pronouns}\n"
        f"- Emotion range: {emotion_range or 'Natural and varied'}\n\n"
        "Use a kebab-case metadata.name based on the first name, a 1-2 sentence "
        "spec.description and a 2-3 paragraph spec.personality that includes the topic "
        f"expertise. Fill the pronoun fields (subject / object / possessive / adjective) as "
        f"{_PRONOUN_FORMS.get(pronouns, pronouns)}."
    )
    return system, user


def build_problem_prompt(
    topic: str,
    difficulty: str,
    description: str | None,
    solution_format: str,
    process: str,
    include_background: bool,
) -> tuple[str, str]:
    system = (
        "You are a LEIA problem designer. Create detailed problem specifications "
        "following the exact LEIA Designer structure."
    )
    user = (
        "Create a detailed problem specification following the LEIA Designer format.\n\n"
        "Requirements:\n"
        f"- Topic: {topic}\n"
        f"- Difficulty: {difficulty}\n"
        f"- Solution format: {solution_format}\n"
        f"- Process: {process}\n"
        f"- Description base: {description or 'Generate an appropriate problem description'}\n"
        f"- Include background: {str(include_background).lower()}\n\n"
        "Use a kebab-case metadata.name based on the topic. spec.personaBackground must be "
        "an empty string when background is not included. spec.solution holds the expected "
        "solution or solution guidance."
    )
    return system, user


def build_behaviour_prompt(role: str, process: str, approach: str, persona_name: str | None) -> tuple[str, str]:
    system = (
        "You are a LEIA behaviour designer. Create detailed behaviour specifications "
        "following the exact LEIA Designer structure."
    )
    user = (
        "Create a detailed behaviour specification following the LEIA Designer format.\n\n"
        "Requirements:\n"
        f"- Role: {role}\n"
        f"- Process: {process}\n"
        f"- Teaching approach: {approach}\n"
        f"- Associated persona: {persona_name or 'Generic'}\n\n"
        "Use a kebab-case metadata.name based on role and approach. spec.role must hold "
        "comprehensive multi-paragraph instructions: how to act in the role, the teaching "
        "approach, how to interact with students, and concrete guidance."
    )
    return system, user


def build_refinement_prompt(component_type: str, component: dict[str, Any], instructions: str) -> tuple[str, str]:
    system = (
        f"You are a LEIA {component_type} refiner. Apply user feedback to improve components "
        "while maintaining their structure."
    )
    user = (
        f"You are refining a LEIA {component_type} based on user feedback.\n\n"
        f"Current {component_type}:\n{_dump(component)}\n\n"
        f"User refinement instructions:\n{instructions}\n\n"
        "Apply the instructions while keeping the component's core structure and purpose. "
        "Keep all existing fields unless specifically asked to change them."
    )
    return system, user
