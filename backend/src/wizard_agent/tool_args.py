"""Argument models for the wizard tools.

Each model validates the arguments the chat backend sends for one tool and
doubles as that tool's JSON Schema. Wire names are camelCase aliases.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_SEARCH_LIMIT

Difficulty = Literal["beginner", "intermediate", "advanced"]
ProcessType = Literal["requirements-elicitation", "game"]
SolutionFormat = Literal["text", "mermaid"]
ComponentType = Literal["persona", "problem", "behaviour"]
Pronouns = Literal["they/them", "he/him", "she/her"]


class ToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def json_schema(cls) -> dict[str, Any]:
        return cls.model_json_schema(by_alias=True)


class AnalyzeRequirementsArgs(ToolArgs):
    user_prompt: str = Field(..., alias="userPrompt", description="The user's description of what they want to create")


class SearchPersonasArgs(ToolArgs):
    topic: str | None = Field(
        None,
        description="Search term to match across all persona fields (name, personality, description, topic, emotion range, etc.)",
    )
    search: str | None = Field(None, description="Alternative search parameter - searches across all persona fields")
    limit: int = Field(DEFAULT_SEARCH_LIMIT, ge=1, description="Maximum number of results to return")


class SearchProblemsArgs(ToolArgs):
    topic: str | None = Field(
        None,
        description="Search term to match across all problem fields (name, description, background, details, solution, format, etc.)",
    )
    difficulty: Difficulty | None = Field(None, description="Filter by specific difficulty level")
    format: SolutionFormat | None = Field(None, description="Filter by specific solution format")
    search: str | None = Field(None, description="Alternative search parameter - searches across all problem fields")
    limit: int = Field(DEFAULT_SEARCH_LIMIT, ge=1, description="Maximum number of results")


class SearchBehavioursArgs(ToolArgs):
    role: str | None = Field(
        None,
        description="Filter by specific role (e.g., product_owner, requirements_engineer) - exact match when search is not provided",
    )
    process: ProcessType | None = Field(None, description="Filter by teaching process type - exact match when search is not provided")
    search: str | None = Field(
        None,
        description="Search term to match across all behaviour fields (name, description, role, process, instructions, approach, etc.)",
    )
    limit: int = Field(DEFAULT_SEARCH_LIMIT, ge=1, description="Maximum number of results")


class SearchLeiasArgs(ToolArgs):
    search: str | None = Field(None, description="Search term to find LEIAs by name or description")
    limit: int = Field(DEFAULT_SEARCH_LIMIT, ge=1, description="Maximum number of results to return")


class LoadLeiaArgs(ToolArgs):
    leia_id: str = Field(..., alias="leiaId", min_length=1, description="The ID of the LEIA to load")


class EvaluateMatchArgs(ToolArgs):
    component_type: ComponentType = Field(..., alias="componentType", description="Type of component to evaluate")
    component_id: str = Field(..., alias="componentId", min_length=1, description="ID of the component from the catalog")
    requirements: dict[str, Any] = Field(..., description="Requirements to match against")


class GeneratePersonaArgs(ToolArgs):
    name: str | None = Field(None, description="First name of the persona")
    personality: str = Field(..., description="Detailed personality description")
    pronouns: Pronouns = Field("they/them", description="Preferred pronouns")
    topic: str = Field(..., description="Subject matter expertise")
    emotion_range: str | None = Field(None, alias="emotionRange", description="Range of emotions the persona can express")


class GenerateProblemArgs(ToolArgs):
    topic: str = Field(..., description="Subject area of the problem")
    difficulty: Difficulty = Field(..., description="Difficulty level")
    description: str | None = Field(None, description="Problem description (optional, can be generated)")
    solution_format: SolutionFormat = Field(..., alias="solutionFormat", description="Expected solution format")
    process: ProcessType = Field(..., description="Type of learning process")
    include_background: bool = Field(True, alias="includeBackground", description="Whether to include background information")


class GenerateBehaviourArgs(ToolArgs):
    role: str = Field(..., description="Role of the behaviour (e.g., product_owner)")
    process: ProcessType = Field(..., description="Teaching process type")
    approach: str = Field(..., description="Teaching approach (e.g., socratic, direct, encouraging)")
    persona_name: str | None = Field(None, alias="personaName", description="Associated persona name for context")


class ValidateLeiaArgs(ToolArgs):
    persona: dict[str, Any] = Field(..., description="Generated or selected persona spec")
    problem: dict[str, Any] = Field(..., description="Generated or selected problem spec")
    behaviour: dict[str, Any] = Field(..., description="Generated or selected behaviour spec")


class RefineComponentArgs(ToolArgs):
    component_type: ComponentType = Field(..., alias="componentType", description="Type of component to refine")
    component: dict[str, Any] = Field(..., description="Current component specification")
    refinement_instructions: str = Field(
        ...,
        alias="refinementInstructions",
        min_length=1,
        description="User instructions for how to refine the component",
    )


class SourceLeia(ToolArgs):
    persona: dict[str, Any] = Field(..., description="Persona of the source LEIA")
    problem: dict[str, Any] = Field(..., description="Problem of the source LEIA")
    behaviour: dict[str, Any] = Field(..., description="Behaviour of the source LEIA")


class Modifications(ToolArgs):
    persona: str | None = Field(None, description="Instructions for how to modify the persona (optional)")
    problem: str | None = Field(None, description="Instructions for how to modify the problem (optional)")
    behaviour: str | None = Field(None, description="Instructions for how to modify the behaviour (optional)")

    def requested(self) -> list[str]:
        return [slot for slot in ("persona", "problem", "behaviour") if getattr(self, slot)]


class CloneLeiaArgs(ToolArgs):
    source_leia: SourceLeia = Field(..., alias="sourceLeia", description="The source LEIA to clone (persona, problem, behaviour)")
    modifications: Modifications = Field(default_factory=Modifications, description="Instructions for what to modify")
