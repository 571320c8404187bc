"""Shared solution-evaluation prompt for the chat providers."""

from __future__ import annotations

from typing import Any

from ...errors import ProviderError
from ...parsing import parse_json_object

EVALUATOR_SYSTEM_PROMPT = (
    "You are an expert evaluator. Your task is to evaluate solutions to problems "
    "and provide detailed feedback."
)


def build_evaluation_prompt(leia_meta: dict[str, str], result: str) -> str:
    solution = leia_meta.get("solution", "")
    solution_format = leia_meta.get("solutionFormat", "text") or "text"
    extra = leia_meta.get("evaluationPrompt", "")
    return f"""Evaluate the following solution for a problem:

Expected solution:
{solution}

Provided solution:
{result}

The Format to compare is:
{solution_format}

Evaluate the provided solution by comparing it with the expected solution.
Assign a score between 0 and 10, where:
- 10 means the solution is perfect
- 0 means the solution is completely incorrect
Provide a detailed evaluation in Markdown format.

Respond ONLY with a JSON object in the following format:
{{
  "score": [score between 0 and 10],
  "evaluation": "[detailed evaluation in Markdown format]"
}}
{extra}""".rstrip()


def build_evaluation_messages(leia_meta: dict[str, str], result: str) -> list[dict[str, Any]]:
    return [
        {"role": "system", "content": EVALUATOR_SYSTEM_PROMPT},
        {"role": "user", "content": build_evaluation_prompt(leia_meta, result)},
    ]


def parse_evaluation(raw: str) -> dict[str, Any]:
    """Parse the evaluator reply into `{score, evaluation}`."""
    try:
        data = parse_json_object(raw)
    except ValueError as e:
        raise ProviderError(f"Evaluation reply could not be parsed: {e}") from e
    if "score" not in data:
        raise ProviderError("Evaluation reply is missing a score")
    data.setdefault("evaluation", "")
    return data
