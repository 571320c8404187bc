"""Structured-output response formats for generated LEIA components."""

from __future__ import annotations

from typing import Any

PROCESS_VALUES = ["requirements-elicitation", "game"]
SOLUTION_FORMAT_VALUES = ["text", "mermaid", "yaml", "markdown", "html", "json", "xml"]

_VERSION = {
    "type": "object",
    "properties": {
        "major": {"type": "number"},
        "minor": {"type": "number"},
        "patch": {"type": "number"},
    },
    "required": ["major", "minor", "patch"],
    "additionalProperties": False,
}

_METADATA = {
    "type": "object",
    "properties": {"name": {"type": "string"}, "version": _VERSION},
    "required": ["name", "version"],
    "additionalProperties": False,
}

_PROCESS_LIST = {"type": "array", "items": {"type": "string", "enum": PROCESS_VALUES}}


def _response_format(name: str, spec_properties: dict[str, Any]) -> dict[str, Any]:
    """Strict json_schema response format; every spec property is required."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "strict": True,
            "schema": {
                "type": "object",
                "properties": {
                    "apiVersion": {"type": "string", "enum": ["v1"]},
                    "metadata": _METADATA,
                    "spec": {
                        "type": "object",
                        "properties": spec_properties,
                        "required": list(spec_properties),
                        "additionalProperties": False,
                    },
                },
                "required": ["apiVersion", "metadata", "spec"],
                "additionalProperties": False,
            },
        },
    }


PERSONA_FORMAT = _response_format(
    "persona",
    {
        "fullName": {"type": "string"},
        "firstName": {"type": "string"},
        "description": {"type": "string"},
        "personality": {"type": "string"},
        "subjectPronoum": {"type": "string"},
        "objectPronoum": {"type": "string"},
        "possesivePronoum": {"type": "string"},
        "possesiveAdjective": {"type": "string"},
    },
)

PROBLEM_FORMAT = _response_format(
    "problem",
    {
        "description": {"type": "string"},
        "personaBackground": {"type": "string"},
        "details": {"type": "string"},
        "solution": {"type": "string"},
        "solutionFormat": {"type": "string", "enum": SOLUTION_FORMAT_VALUES},
        "process": _PROCESS_LIST,
    },
)

BEHAVIOUR_FORMAT = _response_format(
    "behaviour",
    {
        "description": {"type": "string"},
        "role": {"type": "string"},
        "process": _PROCESS_LIST,
    },
)

FORMATS_BY_TYPE = {
    "persona": PERSONA_FORMAT,
    "problem": PROBLEM_FORMAT,
    "behaviour": BEHAVIOUR_FORMAT,
}
