"""Wizard tool protocol and the LEIA creation tools."""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError as ArgsValidationError

from ..errors import NotFoundError, ProviderError, ToolExecutionError
from ..parsing import parse_json_object
from .catalog import CatalogClient
from .component_schemas import BEHAVIOUR_FORMAT, FORMATS_BY_TYPE, PERSONA_FORMAT, PROBLEM_FORMAT
from .llm import ChatClient
from .models import ToolDef, ToolResult
from .prompts import (
    ANALYST_INSTRUCTIONS,
    EVALUATOR_INSTRUCTIONS,
    VALIDATOR_INSTRUCTIONS,
    build_behaviour_prompt,
    build_match_prompt,
    build_persona_prompt,
    build_problem_prompt,
    build_refinement_prompt,
    build_requirements_prompt,
    build_validation_prompt,
)
from .tool_args import (
    AnalyzeRequirementsArgs,
    CloneLeiaArgs,
    EvaluateMatchArgs,
    GenerateBehaviourArgs,
    GeneratePersonaArgs,
    GenerateProblemArgs,
    LoadLeiaArgs,
    RefineComponentArgs,
    SearchBehavioursArgs,
    SearchLeiasArgs,
    SearchPersonasArgs,
    SearchProblemsArgs,
    ToolArgs,
    ValidateLeiaArgs,
)

if TYPE_CHECKING:
    from ..model_registry.registry import ProviderRegistry

logger = logging.getLogger(__name__)

WIZARD_PROVIDER_NAME = "wizard"

# Failures a handler reports as `success: false` instead of raising.
_MODEL_ERRORS = (ProviderError, NotFoundError, ToolExecutionError, ValueError)


@dataclass
class ToolContext:
    """Collaborators shared by the tools of one wizard turn."""

    registry: ProviderRegistry
    catalog: CatalogClient
    chat: ChatClient
    user_token: str | None = None

    async def ask_default_model(self, instructions: str, prompt: str) -> dict[str, Any]:
        """One-shot JSON question to the registry's default provider."""
        provider = self.registry.get_model()
        if provider.name == WIZARD_PROVIDER_NAME:
            raise ProviderError("The wizard provider cannot answer wizard tool prompts")
        session_data = await provider.create_session(instructions=instructions)
        response = await provider.send_message(message=prompt, session_data=session_data)
        return parse_json_object(response.get("message") or "")


class BaseTool(ABC):
    """Base class for wizard tools."""

    name: str = ""
    title: str = ""
    description: str = ""
    args_model: type[ToolArgs] = ToolArgs

    def __init__(self, context: ToolContext) -> None:
        self.context = context

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for parameters."""
        return self.args_model.json_schema()

    def describe(self, args: dict[str, Any]) -> str:
        """Short progress line shown while the tool runs."""
        return ""

    async def run(self, params: dict[str, Any]) -> ToolResult:
        """Validate raw arguments, then execute; invalid arguments become a failed result."""
        try:
            args = self.args_model.model_validate(params)
        except ArgsValidationError as e:
            logger.info("Invalid arguments for %s: %s", self.name, e.errors())
            return ToolResult.failure(f"Invalid arguments for {self.name}: {e}")
        return await self.execute(args)

    @abstractmethod
    async def execute(self, args: Any) -> ToolResult:
        ...

    def to_def(self) -> ToolDef:
        return ToolDef(name=self.name, description=self.description, parameters=self.parameters)

    def to_tool_schema(self) -> dict[str, Any]:
        return self.to_def().to_tool_schema()


# ---------------------------------------------------------------------------
# Requirements analysis
# ---------------------------------------------------------------------------


class AnalyzeRequirementsTool(BaseTool):
    name = "analyze_requirements"
    title = "Analyzing Requirements"
    description = "Analyze user request to extract structured requirements for LEIA creation"
    args_model = AnalyzeRequirementsArgs

    def describe(self, args: dict[str, Any]) -> str:
        return "Extracting structured requirements from user prompt"

    async def execute(self, args: AnalyzeRequirementsArgs) -> ToolResult:
        try:
            requirements = await self.context.ask_default_model(
                ANALYST_INSTRUCTIONS, build_requirements_prompt(args.user_prompt)
            )
        except _MODEL_ERRORS as e:
            logger.error("Error analyzing requirements: %s", e)
            return ToolResult.failure(str(e))
        return ToolResult(success=True, data={"requirements": requirements})


# ---------------------------------------------------------------------------
# Catalog search
# ---------------------------------------------------------------------------


class _CatalogSearchTool(BaseTool):
    component_type: str = ""
    result_key: str = ""

    def _query(self, args: Any) -> dict[str, Any]:
        return args.model_dump(exclude_none=True)

    @staticmethod
    @abstractmethod
    def _summarize(item: dict[str, Any]) -> dict[str, Any]:
        ...

    async def execute(self, args: Any) -> ToolResult:
        try:
            data = await self.context.catalog.search(
                self.component_type, self._query(args), user_token=self.context.user_token
            )
        except httpx.HTTPError as e:
            logger.error("Error searching %s: %s", self.result_key, e)
            return ToolResult.failure(str(e) or type(e).__name__)
        items = data.get(self.result_key) or []
        return ToolResult(
            success=True,
            data={
                "count": data.get("count", len(items)),
                self.result_key: [self._summarize(item) for item in items],
            },
        )


class SearchPersonasTool(_CatalogSearchTool):
    name = "search_existing_personas"
    title = "Searching Existing Personas"
    description = (
        "Search for existing personas in the Designer catalog that match criteria. Only returns "
        "published/public components. Searches across all persona fields including name, "
        "personality, description, topic, emotion range, etc."
    )
    args_model = SearchPersonasArgs
    component_type = "persona"
    result_key = "personas"

    def describe(self, args: dict[str, Any]) -> str:
        topic = args.get("topic")
        return f'Searching personas about "{topic}"' if topic else "Searching personas in catalog"

    @staticmethod
    def _summarize(item: dict[str, Any]) -> dict[str, Any]:
        spec = item.get("spec") or {}
        return {
            "id": item.get("_id"),
            "name": spec.get("name") or spec.get("firstName"),
            "personality": spec.get("personality"),
            "topic": spec.get("topic"),
            "pronouns": spec.get("pronouns"),
            "emotionRange": spec.get("emotionRange"),
        }


class SearchProblemsTool(_CatalogSearchTool):
    name = "search_existing_problems"
    title = "Searching Existing Problems"
    description = (
        "Search for existing problems in the Designer catalog. Only returns published/public "
        "components. Searches across all problem fields including name, description, background, "
        "details, solution, and format."
    )
    args_model = SearchProblemsArgs
    component_type = "problem"
    result_key = "problems"

    def describe(self, args: dict[str, Any]) -> str:
        topic = args.get("topic")
        if not topic:
            return "Searching problems in catalog"
        difficulty = args.get("difficulty")
        return f'Searching problems about "{topic}"' + (f" ({difficulty})" if difficulty else "")

    @staticmethod
    def _summarize(item: dict[str, Any]) -> dict[str, Any]:
        spec = item.get("spec") or {}
        return {
            "id": item.get("_id"),
            "description": spec.get("description"),
            "background": spec.get("background"),
            "difficulty": spec.get("difficulty"),
            "solutionFormat": spec.get("solutionFormat"),
            "process": spec.get("process"),
        }


class SearchBehavioursTool(_CatalogSearchTool):
    name = "search_existing_behaviours"
    title = "Searching Existing Behaviours"
    description = (
        "Search for existing behaviours in the Designer catalog. Only returns published/public "
        "components. Searches across all behaviour fields including name, description, role, "
        "process, instructions, and approach."
    )
    args_model = SearchBehavioursArgs
    component_type = "behaviour"
    result_key = "behaviours"

    def describe(self, args: dict[str, Any]) -> str:
        role = args.get("role")
        return f'Searching behaviours for role "{role}"' if role else "Searching behaviours in catalog"

    @staticmethod
    def _summarize(item: dict[str, Any]) -> dict[str, Any]:
        spec = item.get("spec") or {}
        return {
            "id": item.get("_id"),
            "role": spec.get("role"),
            "process": spec.get("process"),
            "description": spec.get("description"),
            "instructions": spec.get("instructions"),
        }


class SearchLeiasTool(_CatalogSearchTool):
    name = "search_existing_leias"
    title = "Searching Existing LEIAs"
    description = (
        "Search for complete existing LEIAs in the catalog. Returns full LEIA configurations "
        "including persona, problem, and behaviour. Use this when user wants to base a new LEIA "
        "on an existing one."
    )
    args_model = SearchLeiasArgs
    component_type = "leia"
    result_key = "leias"

    def describe(self, args: dict[str, Any]) -> str:
        search = args.get("search")
        return f'Searching LEIAs for "{search}"' if search else "Searching LEIAs in catalog"

    @staticmethod
    def _summarize(item: dict[str, Any]) -> dict[str, Any]:
        metadata = item.get("metadata") or {}
        return {
            "id": item.get("_id"),
            "name": metadata.get("name"),
            "description": metadata.get("description"),
            "version": metadata.get("version"),
        }


class LoadLeiaTool(BaseTool):
    name = "load_leia_by_id"
    title = "Loading LEIA"
    description = (
        "Load a complete LEIA by its ID. Returns the full LEIA with persona, problem, and "
        "behaviour components. Use this after finding a LEIA to load its complete specification."
    )
    args_model = LoadLeiaArgs

    def describe(self, args: dict[str, Any]) -> str:
        return f"Loading LEIA {args.get('leiaId', '')}".strip()

    async def execute(self, args: LoadLeiaArgs) -> ToolResult:
        try:
            leia = await self.context.catalog.get_component("leia", args.leia_id)
        except httpx.HTTPError as e:
            logger.error("Error loading LEIA %s: %s", args.leia_id, e)
            return ToolResult.failure(str(e) or type(e).__name__)
        metadata = leia.get("metadata") or {}
        spec = leia.get("spec") or {}
        return ToolResult(
            success=True,
            data={
                "leia": {
                    "id": leia.get("_id"),
                    "name": metadata.get("name"),
                    "description": metadata.get("description"),
                    "persona": spec.get("personaId") or spec.get("persona"),
                    "problem": spec.get("problemId") or spec.get("problem"),
                    "behaviour": spec.get("behaviourId") or spec.get("behaviour"),
                }
            },
        )


# ---------------------------------------------------------------------------
# Evaluation and validation
# ---------------------------------------------------------------------------


class EvaluateMatchTool(BaseTool):
    name = "evaluate_component_match"
    title = "Evaluating Component Match"
    description = "Evaluate how well an existing component matches the requirements. Returns a score from 0-100."
    args_model = EvaluateMatchArgs

    def describe(self, args: dict[str, Any]) -> str:
        return f"Evaluating {args.get('componentType', 'component')} match quality"

    async def execute(self, args: EvaluateMatchArgs) -> ToolResult:
        try:
            component = await self.context.catalog.get_component(args.component_type, args.component_id)
        except httpx.HTTPError as e:
            logger.info("Component %s not loadable: %s", args.component_id, e)
            return ToolResult.failure(f"Component not found: {args.component_id}")

        prompt = build_match_prompt(args.component_type, component.get("spec"), args.requirements)
        try:
            evaluation = await self.context.ask_default_model(EVALUATOR_INSTRUCTIONS, prompt)
        except _MODEL_ERRORS as e:
            logger.error("Error evaluating component match: %s", e)
            return ToolResult.failure(str(e))
        return ToolResult(success=True, data={"componentId": args.component_id, **evaluation})


class ValidateLeiaTool(BaseTool):
    name = "validate_leia_spec"
    title = "Validating LEIA Specification"
    description = "Validate that all LEIA components (persona, problem, behaviour) work together cohesively"
    args_model = ValidateLeiaArgs

    def describe(self, args: dict[str, Any]) -> str:
        return "Validating LEIA component coherence"

    async def execute(self, args: ValidateLeiaArgs) -> ToolResult:
        prompt = build_validation_prompt(args.persona, args.problem, args.behaviour)
        try:
            validation = await self.context.ask_default_model(VALIDATOR_INSTRUCTIONS, prompt)
        except _MODEL_ERRORS as e:
            logger.error("Error validating LEIA spec: %s", e)
            return ToolResult.failure(str(e))
        return ToolResult(success=True, data=validation)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class _GenerateTool(BaseTool):
    artifact: str = ""
    response_format: dict[str, Any] = {}

    @abstractmethod
    def _prompt(self, args: Any) -> tuple[str, str]:
        ...

    async def execute(self, args: Any) -> ToolResult:
        system, prompt = self._prompt(args)
        try:
            component = await self.context.chat.structured(
                system=system, prompt=prompt, response_format=self.response_format
            )
        except (ProviderError, ToolExecutionError) as e:
            logger.error("Error generating %s: %s", self.artifact, e)
            return ToolResult.failure(str(e))
        return ToolResult(success=True, data={self.artifact: component})


class GeneratePersonaTool(_GenerateTool):
    name = "generate_persona"
    title = "Generating Persona"
    description = "Generate a new persona specification using AI"
    args_model = GeneratePersonaArgs
    artifact = "persona"
    response_format = PERSONA_FORMAT

    def describe(self, args: dict[str, Any]) -> str:
        name = args.get("name")
        return f'Creating persona "{name}"' if name else "Creating new persona"

    def _prompt(self, args: GeneratePersonaArgs) -> tuple[str, str]:
        return build_persona_prompt(args.name, args.personality, args.pronouns, args.topic, args.emotion_range)


class GenerateProblemTool(_GenerateTool):
    name = "generate_problem"
    title = "Generating Problem"
    description = "Generate a new problem specification using AI"
    args_model = GenerateProblemArgs
    artifact = "problem"
    response_format = PROBLEM_FORMAT

    def describe(self, args: dict[str, Any]) -> str:
        return f"Creating {args.get('difficulty') or 'new'} problem about \"{args.get('topic', '')}\""

    def _prompt(self, args: GenerateProblemArgs) -> tuple[str, str]:
        return build_problem_prompt(
            args.topic,
            args.difficulty,
            args.description,
            args.solution_format,
            args.process,
            args.include_background,
        )


class GenerateBehaviourTool(_GenerateTool):
    name = "generate_behaviour"
    title = "Generating Behaviour"
    description = "Generate a new behaviour specification using AI"
    args_model = GenerateBehaviourArgs
    artifact = "behaviour"
    response_format = BEHAVIOUR_FORMAT

    def describe(self, args: dict[str, Any]) -> str:
        return f"Creating behaviour for {args.get('role') or 'teaching'}"

    def _prompt(self, args: GenerateBehaviourArgs) -> tuple[str, str]:
        return build_behaviour_prompt(args.role, args.process, args.approach, args.persona_name)


# ---------------------------------------------------------------------------
# Refinement and cloning
# ---------------------------------------------------------------------------


async def refine(context: ToolContext, component_type: str, component: dict[str, Any], instructions: str) -> dict[str, Any]:
    """Rewrite one component following user instructions; raises ProviderError/ToolExecutionError."""
    system, prompt = build_refinement_prompt(component_type, component, instructions)
    return await context.chat.structured(
        system=system, prompt=prompt, response_format=FORMATS_BY_TYPE[component_type]
    )


class RefineComponentTool(BaseTool):
    name = "refine_component"
    title = "Refining Component"
    description = "Refine an existing component based on user feedback"
    args_model = RefineComponentArgs

    def describe(self, args: dict[str, Any]) -> str:
        return f"Refining {args.get('componentType', 'component')}"

    async def execute(self, args: RefineComponentArgs) -> ToolResult:
        try:
            refined = await refine(self.context, args.component_type, args.component, args.refinement_instructions)
        except (ProviderError, ToolExecutionError) as e:
            logger.error("Error refining %s: %s", args.component_type, e)
            return ToolResult.failure(str(e))
        return ToolResult(success=True, data={"componentType": args.component_type, "component": refined})


class CloneLeiaTool(BaseTool):
    name = "clone_and_modify_leia"
    title = "Cloning and Modifying LEIA"
    description = (
        "Clone an existing LEIA and modify specific components based on user instructions. Use "
        "this when user wants to create a new LEIA based on an existing one with specific changes."
    )
    args_model = CloneLeiaArgs

    def describe(self, args: dict[str, Any]) -> str:
        modifications = args.get("modifications") or {}
        changed = [k for k, v in modifications.items() if v] if isinstance(modifications, dict) else []
        return f"Cloning and modifying {', '.join(changed)}" if changed else "Cloning LEIA"

    async def execute(self, args: CloneLeiaArgs) -> ToolResult:
        components = {
            "persona": copy.deepcopy(args.source_leia.persona),
            "problem": copy.deepcopy(args.source_leia.problem),
            "behaviour": copy.deepcopy(args.source_leia.behaviour),
        }
        # A failed refinement keeps the cloned original for that slot.
        for slot in args.modifications.requested():
            try:
                components[slot] = await refine(
                    self.context, slot, components[slot], getattr(args.modifications, slot)
                )
            except (ProviderError, ToolExecutionError) as e:
                logger.warning("Keeping original %s after failed refinement: %s", slot, e)
        return ToolResult(success=True, data=components)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

WIZARD_TOOL_CLASSES: tuple[type[BaseTool], ...] = (
    AnalyzeRequirementsTool,
    SearchPersonasTool,
    SearchProblemsTool,
    SearchBehavioursTool,
    SearchLeiasTool,
    LoadLeiaTool,
    CloneLeiaTool,
    EvaluateMatchTool,
    GeneratePersonaTool,
    GenerateProblemTool,
    GenerateBehaviourTool,
    ValidateLeiaTool,
    RefineComponentTool,
)


def get_wizard_tools(context: ToolContext) -> list[BaseTool]:
    """Return the fixed wizard tool list bound to one turn's context."""
    return [cls(context) for cls in WIZARD_TOOL_CLASSES]
