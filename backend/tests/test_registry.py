"""Unit tests for model_registry: smoke tests, lookup, hot registration and sync."""
from __future__ import annotations

import unittest
from contextlib import redirect_stdout
from io import StringIO
from unittest.mock import patch

from fakes import EchoProvider, FakeClock
from src.errors import NotFoundError, ProviderError
from src.model_registry import ProviderRegistry, RegistryConfig, SessionHandle, SessionRecord, smoke_test
from src.model_registry.providers import PROVIDER_CLASSES, WizardProvider, build_providers
from src.model_registry.providers.evaluation import build_evaluation_prompt, parse_evaluation
from src.parsing import parse_json_object
from src.session_store import MEMORY_URL, create_store


class SilentProvider(EchoProvider):
    async def send_message(self, *, message, session_data, session_id=None):
        return {"message": "   "}


class NotAProvider:
    name = "broken"


# Target for "module:attribute" registration.
REGISTERED_ECHO = EchoProvider(name="placeholder", reply="registered")


class RegistryTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = create_store(MEMORY_URL, clock=FakeClock())

    def make_registry(self, *providers, default: str = "echo") -> ProviderRegistry:
        return ProviderRegistry(self.store, providers, RegistryConfig(default_model=default))


class TestInitialize(RegistryTestCase):
    async def test_validated_providers_are_available(self) -> None:
        registry = self.make_registry(EchoProvider("echo"), EchoProvider("down", fail=True))
        await registry.initialize()

        self.assertEqual(registry.available_models(), ["echo"])
        self.assertTrue(registry.is_validated("echo"))
        self.assertFalse(registry.is_validated("down"))
        self.assertEqual(
            await self.store.hgetall("validated_models"),
            {"echo": "true", "down": "false"},
        )

    async def test_empty_reply_fails_smoke_test(self) -> None:
        registry = self.make_registry(SilentProvider("silent"))
        await registry.initialize()
        self.assertEqual(registry.available_models(), [])

    async def test_default_falls_back_to_first_validated(self) -> None:
        registry = self.make_registry(
            EchoProvider("down", fail=True), EchoProvider("first"), EchoProvider("second"), default="down"
        )
        await registry.initialize()
        self.assertEqual(registry.default_model, "first")
        self.assertEqual(registry.get_model().name, "first")

    async def test_initialize_publishes_listing(self) -> None:
        registry = self.make_registry(EchoProvider("echo"), EchoProvider("other"))
        await registry.initialize()
        self.assertEqual(await self.store.get_json("models:available"), ["echo", "other"])
        self.assertEqual(await self.store.get("models:default"), "echo")
        self.assertEqual(await registry.sync.get_models(), {"models": ["echo", "other"], "default": "echo"})


class TestLookup(RegistryTestCase):
    async def asyncSetUp(self) -> None:
        self.registry = self.make_registry(EchoProvider("echo"), EchoProvider("other"))
        await self.registry.initialize()

    async def test_default_sentinel_is_deterministic(self) -> None:
        picks = {self.registry.get_model("default").name for _ in range(10)}
        self.assertEqual(picks, {"echo"})

    async def test_named_lookup(self) -> None:
        self.assertEqual(self.registry.get_model("other").name, "other")

    async def test_unknown_name_raises_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.registry.get_model("missing")

    async def test_set_default_model(self) -> None:
        await self.registry.set_default_model("other")
        self.assertEqual(self.registry.get_model().name, "other")
        self.assertEqual(await self.store.get("models:default"), "other")
        with self.assertRaises(NotFoundError):
            await self.registry.set_default_model("missing")


class TestRegisterModel(RegistryTestCase):
    async def asyncSetUp(self) -> None:
        self.registry = self.make_registry(EchoProvider("echo"))
        await self.registry.initialize()

    async def test_failing_provider_leaves_validated_set_unchanged(self) -> None:
        before = self.registry.available_models()
        result = await self.registry.register_model("down", EchoProvider("down", fail=True))

        self.assertFalse(result["success"])
        self.assertTrue(result["errors"])
        self.assertEqual(self.registry.available_models(), before)
        self.assertEqual(await self.store.hget("validated_models", "down"), "false")

    async def test_failed_replacement_keeps_live_provider_validated(self) -> None:
        result = await self.registry.register_model("echo", EchoProvider("echo", fail=True))

        self.assertFalse(result["success"])
        self.assertEqual(self.registry.available_models(), ["echo"])
        self.assertEqual(await self.store.hget("validated_models", "echo"), "true")

    async def test_provider_without_interface_is_rejected(self) -> None:
        result = await self.registry.register_model("broken", NotAProvider())
        self.assertEqual(result["success"], False)
        self.assertIn("Provider does not implement send_message", result["errors"])
        self.assertEqual(self.registry.available_models(), ["echo"])

    async def test_bad_import_path_is_reported(self) -> None:
        result = await self.registry.register_model("ghost", "no_such_package.module:Provider")
        self.assertFalse(result["success"])
        result = await self.registry.register_model("ghost", "not-a-path")
        self.assertFalse(result["success"])
        self.assertEqual(self.registry.available_models(), ["echo"])

    async def test_successful_registration_is_published(self) -> None:
        result = await self.registry.register_model("extra", EchoProvider("whatever"))
        self.assertEqual(result, {"success": True})
        self.assertEqual(self.registry.get_model("extra").name, "extra")
        self.assertEqual(await self.store.get_json("models:available"), ["echo", "extra"])

    async def test_register_by_import_path(self) -> None:
        result = await self.registry.register_model("imported", f"{__name__}:REGISTERED_ECHO")
        self.assertTrue(result["success"])
        self.assertIs(self.registry.get_model("imported"), REGISTERED_ECHO)


class TestBuildProviders(unittest.TestCase):
    def test_unknown_names_are_skipped(self) -> None:
        providers = build_providers(["ollama", "nope"])
        self.assertEqual([p.name for p in providers], ["ollama"])

    def test_wizard_is_bound_to_registry(self) -> None:
        registry = ProviderRegistry(create_store(MEMORY_URL))
        (wizard,) = build_providers(["wizard"], registry)
        self.assertIsInstance(wizard, WizardProvider)
        self.assertIs(wizard.registry, registry)

    def test_all_known_providers_have_unique_names(self) -> None:
        self.assertEqual(set(PROVIDER_CLASSES), {"openai-assistant", "openai-responses", "ollama", "wizard"})


class TestSmokeTestScript(unittest.IsolatedAsyncioTestCase):
    async def test_exit_code_reflects_failures(self) -> None:
        providers = [EchoProvider("echo"), EchoProvider("down", fail=True)]
        out = StringIO()
        with patch.object(smoke_test, "build_providers", return_value=providers), redirect_stdout(out):
            code = await smoke_test.run(["echo", "down"])
        self.assertEqual(code, 1)
        self.assertIn("1/2 providers passed", out.getvalue())


class TestSessionRecord(unittest.TestCase):
    def test_hash_round_trip_uses_wire_names(self) -> None:
        record = SessionRecord(
            session_id="s1",
            model_name="echo",
            handle=SessionHandle(assistant_id="a", thread_id="t"),
            created_at=1700000000000,
        )
        data = record.to_hash()
        self.assertEqual(data["assistantId"], "a")
        self.assertEqual(data["conversationId"], "")
        self.assertEqual(SessionRecord.from_hash(data), record)

    def test_handle_accepts_camel_case_session_data(self) -> None:
        handle = SessionHandle.from_session_data({"conversationId": "c1", "instructions": "be kind"})
        self.assertTrue(handle.is_conversation)
        self.assertFalse(handle.is_thread)


class TestEvaluationParsing(unittest.TestCase):
    def test_parse_fenced_reply(self) -> None:
        reply = 'Here you go:\n```json\n{"score": 7, "evaluation": "Mostly right"}\n```'
        self.assertEqual(parse_evaluation(reply), {"score": 7, "evaluation": "Mostly right"})

    def test_missing_score_is_provider_error(self) -> None:
        with self.assertRaises(ProviderError):
            parse_evaluation('{"evaluation": "no score"}')
        with self.assertRaises(ProviderError):
            parse_evaluation("I cannot evaluate this")

    def test_prompt_includes_solution_and_format(self) -> None:
        prompt = build_evaluation_prompt({"solution": "A -> B", "solutionFormat": "mermaid"}, "A -> C")
        self.assertIn("A -> B", prompt)
        self.assertIn("A -> C", prompt)
        self.assertIn("mermaid", prompt)


class TestParseJsonObject(unittest.TestCase):
    def test_bare_json(self) -> None:
        self.assertEqual(parse_json_object('{"a": 1}'), {"a": 1})

    def test_json_inside_prose(self) -> None:
        self.assertEqual(parse_json_object('Sure! {"a": {"b": 2}} Hope that helps.'), {"a": {"b": 2}})

    def test_rejects_non_objects(self) -> None:
        for raw in ("", "[1, 2]", "no json here"):
            with self.assertRaises(ValueError):
                parse_json_object(raw)


if __name__ == "__main__":
    unittest.main()
