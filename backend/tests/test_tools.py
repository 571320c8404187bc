"""Unit tests for the wizard tools and the Designer catalog client (mocked HTTP, fake models)."""
from __future__ import annotations

import unittest
from typing import Any

import httpx

from fakes import EchoProvider, FakeClock, ScriptedChat
from src.model_registry import ProviderRegistry, RegistryConfig
from src.session_store import MEMORY_URL, create_store
from src.wizard_agent.catalog import CatalogClient
from src.wizard_agent.component_schemas import FORMATS_BY_TYPE
from src.wizard_agent.tools import (
    WIZARD_TOOL_CLASSES,
    AnalyzeRequirementsTool,
    CloneLeiaTool,
    EvaluateMatchTool,
    GenerateProblemTool,
    LoadLeiaTool,
    RefineComponentTool,
    SearchPersonasTool,
    ToolContext,
    ValidateLeiaTool,
    _CatalogSearchTool,
    _GenerateTool,
    get_wizard_tools,
)

BASE_URL = "http://designer.test"

PERSONA = {"apiVersion": "v1", "metadata": {"name": "Ana"}, "spec": {"firstName": "Ana"}}
PROBLEM = {"apiVersion": "v1", "metadata": {"name": "Shop"}, "spec": {"description": "Online shop"}}
BEHAVIOUR = {"apiVersion": "v1", "metadata": {"name": "PO"}, "spec": {"role": "product_owner"}}


class RecordingCatalog:
    """httpx.MockTransport handler serving canned catalog responses."""

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = dict(routes)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json=body)


def make_catalog(routes: dict[str, Any], api_key: str = "catalog-key") -> tuple[CatalogClient, RecordingCatalog]:
    handler = RecordingCatalog(routes)
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return CatalogClient(base_url=BASE_URL, api_key=api_key, client=client), handler


class ToolTestCase(unittest.IsolatedAsyncioTestCase):
    model_reply = '{"ok": true}'
    routes: dict[str, Any] = {}

    async def asyncSetUp(self) -> None:
        store = create_store(MEMORY_URL, clock=FakeClock())
        self.model = EchoProvider("json-model", reply=self.model_reply)
        self.registry = ProviderRegistry(store, [self.model], RegistryConfig(default_model="json-model"))
        await self.registry.initialize()
        self.catalog, self.http = make_catalog(self.routes)
        self.chat = ScriptedChat(components={"persona": PERSONA, "problem": PROBLEM, "behaviour": BEHAVIOUR})
        self.context = ToolContext(registry=self.registry, catalog=self.catalog, chat=self.chat)

    async def asyncTearDown(self) -> None:
        await self.catalog.close()


class TestToolProtocol(ToolTestCase):
    async def test_fixed_tool_list(self) -> None:
        tools = get_wizard_tools(self.context)
        self.assertEqual(len(tools), 13)
        self.assertEqual(len({t.name for t in tools}), 13)
        self.assertEqual([type(t) for t in tools], list(WIZARD_TOOL_CLASSES))

    async def test_schema_uses_wire_names(self) -> None:
        schema = GenerateProblemTool(self.context).to_tool_schema()
        self.assertEqual(schema["type"], "function")
        params = schema["function"]["parameters"]
        self.assertIn("solutionFormat", params["properties"])
        self.assertIn("solutionFormat", params["required"])

    async def test_invalid_arguments_become_failed_result(self) -> None:
        result = await GenerateProblemTool(self.context).run({"topic": "shop", "difficulty": "impossible"})
        self.assertFalse(result.success)
        self.assertIn("Invalid arguments for generate_problem", result.error)
        self.assertEqual(self.chat.structured_calls, [])

    async def test_tool_bases_require_their_hooks(self) -> None:
        for base in (_CatalogSearchTool, _GenerateTool):
            with self.assertRaises(TypeError):
                base(self.context)


class TestAnalyzeAndValidate(ToolTestCase):
    model_reply = 'Sure:\n```json\n{"topic": "e-commerce", "difficulty": "beginner"}\n```'

    async def test_analyze_asks_default_model(self) -> None:
        result = await AnalyzeRequirementsTool(self.context).run({"userPrompt": "A shop exercise"})
        self.assertTrue(result.success)
        self.assertEqual(result.data["requirements"]["topic"], "e-commerce")
        message, _ = self.model.messages[-1]
        self.assertIn("A shop exercise", message)

    async def test_validate_returns_model_verdict(self) -> None:
        result = await ValidateLeiaTool(self.context).run(
            {"persona": PERSONA, "problem": PROBLEM, "behaviour": BEHAVIOUR}
        )
        self.assertTrue(result.success)
        self.assertEqual(result.data["difficulty"], "beginner")


class TestUnparseableModelReply(ToolTestCase):
    model_reply = "I'd rather not answer in JSON."

    async def test_analyze_reports_failure(self) -> None:
        result = await AnalyzeRequirementsTool(self.context).run({"userPrompt": "A shop exercise"})
        self.assertFalse(result.success)
        self.assertIn("JSON", result.error)


class TestCatalogTools(ToolTestCase):
    routes = {
        "/api/v1/catalog/personas": {
            "count": 1,
            "personas": [{"_id": "p1", "spec": {"firstName": "Ana", "personality": "calm", "topic": "shops"}}],
        },
        "/api/v1/wizard/search/personas": {"count": 0, "personas": []},
        "/api/v1/catalog/leias/l1": {
            "_id": "l1",
            "metadata": {"name": "Shop LEIA", "description": "Sells things"},
            "spec": {"persona": PERSONA, "problem": PROBLEM, "behaviour": BEHAVIOUR},
        },
        "/api/v1/catalog/problems/pr1": {"_id": "pr1", "spec": {"description": "Online shop"}},
    }
    model_reply = '{"score": 85, "reasoning": "Close match"}'

    async def test_public_search_uses_catalog_key(self) -> None:
        result = await SearchPersonasTool(self.context).run({"topic": "shops", "limit": 3})

        self.assertTrue(result.success)
        self.assertEqual(result.data["count"], 1)
        self.assertEqual(result.data["personas"][0]["id"], "p1")
        self.assertEqual(result.data["personas"][0]["name"], "Ana")
        request = self.http.requests[-1]
        self.assertEqual(request.headers["x-catalog-api-key"], "catalog-key")
        self.assertEqual(request.url.params["topic"], "shops")
        self.assertEqual(request.url.params["limit"], "3")
        self.assertNotIn("search", request.url.params)

    async def test_user_token_switches_to_private_search(self) -> None:
        self.context.user_token = "user-jwt"
        result = await SearchPersonasTool(self.context).run({"search": "calm"})

        self.assertTrue(result.success)
        request = self.http.requests[-1]
        self.assertEqual(request.url.path, "/api/v1/wizard/search/personas")
        self.assertEqual(request.headers["authorization"], "Bearer user-jwt")

    async def test_http_error_becomes_failed_result(self) -> None:
        self.http.routes.pop("/api/v1/catalog/personas")
        result = await SearchPersonasTool(self.context).run({"topic": "shops"})
        self.assertFalse(result.success)

    async def test_load_leia(self) -> None:
        result = await LoadLeiaTool(self.context).run({"leiaId": "l1"})
        self.assertTrue(result.success)
        leia = result.data["leia"]
        self.assertEqual(leia["name"], "Shop LEIA")
        self.assertEqual(leia["persona"], PERSONA)

    async def test_evaluate_match(self) -> None:
        result = await EvaluateMatchTool(self.context).run(
            {"componentType": "problem", "componentId": "pr1", "requirements": {"topic": "shop"}}
        )
        self.assertTrue(result.success)
        self.assertEqual(result.data["score"], 85)
        self.assertEqual(result.data["componentId"], "pr1")

    async def test_evaluate_missing_component(self) -> None:
        result = await EvaluateMatchTool(self.context).run(
            {"componentType": "problem", "componentId": "nope", "requirements": {}}
        )
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Component not found: nope")


class TestGenerationTools(ToolTestCase):
    async def test_generate_problem_uses_strict_schema(self) -> None:
        result = await GenerateProblemTool(self.context).run(
            {"topic": "shop", "difficulty": "beginner", "solutionFormat": "mermaid", "process": "game"}
        )
        self.assertTrue(result.success)
        self.assertEqual(result.data["problem"], PROBLEM)
        call = self.chat.structured_calls[-1]
        self.assertEqual(call["name"], "problem")
        self.assertIn("shop", call["prompt"])

    async def test_refine_component(self) -> None:
        result = await RefineComponentTool(self.context).run(
            {"componentType": "behaviour", "component": BEHAVIOUR, "refinementInstructions": "Be stricter"}
        )
        self.assertTrue(result.success)
        self.assertEqual(result.data, {"componentType": "behaviour", "component": BEHAVIOUR})
        self.assertIn("Be stricter", self.chat.structured_calls[-1]["prompt"])

    async def test_clone_only_refines_requested_slots(self) -> None:
        source = {
            "persona": {"spec": {"firstName": "Old"}},
            "problem": {"spec": {"description": "Old problem"}},
            "behaviour": {"spec": {"role": "old"}},
        }
        result = await CloneLeiaTool(self.context).run(
            {"sourceLeia": source, "modifications": {"persona": "Make her younger"}}
        )

        self.assertTrue(result.success)
        self.assertEqual(result.data["persona"], PERSONA)
        self.assertEqual(result.data["problem"], source["problem"])
        self.assertIsNot(result.data["problem"], source["problem"])
        self.assertEqual([c["name"] for c in self.chat.structured_calls], ["persona"])

    def test_formats_cover_every_component(self) -> None:
        self.assertEqual(set(FORMATS_BY_TYPE), {"persona", "problem", "behaviour"})
        for name, fmt in FORMATS_BY_TYPE.items():
            self.assertEqual(fmt["json_schema"]["name"], name)
            self.assertTrue(fmt["json_schema"]["strict"])


class TestCatalogClient(unittest.IsolatedAsyncioTestCase):
    async def test_unknown_component_type(self) -> None:
        catalog, _ = make_catalog({})
        with self.assertRaises(ValueError):
            await catalog.search("spaceship", {})
        await catalog.close()

    async def test_empty_params_are_dropped(self) -> None:
        catalog, http = make_catalog({"/api/v1/catalog/problems": {"count": 0, "problems": []}})
        data = await catalog.search("problem", {"topic": "", "difficulty": None, "limit": 5})
        self.assertEqual(data, {"count": 0, "problems": []})
        self.assertEqual(dict(http.requests[-1].url.params), {"limit": "5"})
        await catalog.close()


if __name__ == "__main__":
    unittest.main()
