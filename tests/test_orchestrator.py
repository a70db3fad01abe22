import random
import unittest

from app.ai.availability import AvailabilityTracker
from app.ai.errors import NoFileProvided
from app.ai.mock import MockGenerator
from app.ai.orchestrator import AIOrchestrator
from app.schemas.ai import ProviderStatus

from fakes import FakeProvider, quota_error


class OrchestratorTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.openai = FakeProvider("openai")
        self.gemini = FakeProvider("gemini", supports_documents=False)
        self.runs = []
        self.orchestrator = self._build()

    def _build(self, **kwargs):
        providers = {"openai": self.openai, "gemini": self.gemini}
        tracker = AvailabilityTracker(providers, probe_timeout_s=0.5)
        options = {
            "order": ("openai", "gemini"),
            "timeout_s": 0.5,
            "mock": MockGenerator(random.Random(1)),
            "run_recorder": lambda **run: self.runs.append(run),
        }
        options.update(kwargs)
        return AIOrchestrator(providers, tracker, **options)

    async def test_primary_provider_serves_without_notice(self):
        outcome = await self.orchestrator.analyze("Experienced engineer", "Backend role")
        self.assertEqual(outcome.service_used, "openai")
        self.assertIsNone(outcome.notice)
        self.assertEqual(outcome.result.overall_score, 82)
        self.assertEqual(self.gemini.calls["analyze"], 0)

    async def test_failure_falls_through_and_skips_on_next_call(self):
        self.openai.analysis = quota_error("openai")
        first = await self.orchestrator.analyze("Experienced engineer")
        self.assertEqual(first.service_used, "gemini")
        self.assertIsNotNone(first.notice)
        self.assertFalse(self.orchestrator.tracker.is_available("openai"))
        self.assertEqual(self.orchestrator.tracker.get_status("openai").code, "quota_exceeded")

        second = await self.orchestrator.analyze("Experienced engineer")
        self.assertEqual(second.service_used, "gemini")
        self.assertIsNotNone(second.notice)
        self.assertEqual(self.openai.calls["analyze"], 1)
        self.assertEqual(self.gemini.calls["analyze"], 2)

    async def test_all_providers_failing_returns_mock_with_notice(self):
        self.openai.matches = quota_error("openai")
        self.gemini.matches = RuntimeError("boom")
        outcome = await self.orchestrator.match("Experienced engineer")
        self.assertEqual(outcome.service_used, "mock")
        self.assertIn("mock", outcome.notice)
        self.assertEqual(len(outcome.results), 5)
        self.assertEqual(self.orchestrator.tracker.down_providers(), ["openai", "gemini"])
        self.assertEqual(self.orchestrator.preferred(), "mock")

    async def test_malformed_response_falls_back(self):
        self.openai.analysis = "I'm sorry, I can't score this resume."
        outcome = await self.orchestrator.analyze("Experienced engineer")
        self.assertEqual(outcome.service_used, "gemini")
        self.assertEqual(self.orchestrator.tracker.get_status("openai").code, "malformed_response")

    async def test_timeout_counts_as_failure(self):
        self.openai.delay = 2.0
        outcome = await self.orchestrator.match("Experienced engineer")
        self.assertEqual(outcome.service_used, "gemini")
        self.assertEqual(self.orchestrator.tracker.get_status("openai").code, "timeout")
        self.assertEqual([m.id for m in outcome.results], ["j-1", "j-2"])

    async def test_blank_text_goes_straight_to_mock(self):
        outcome = await self.orchestrator.analyze("   ")
        self.assertEqual(outcome.service_used, "mock")
        self.assertIsNotNone(outcome.notice)
        self.assertEqual(self.openai.calls["analyze"], 0)
        self.assertEqual(self.gemini.calls["analyze"], 0)

    async def test_unconfigured_primary_is_skipped_silently(self):
        self.openai._configured = False
        outcome = await self.orchestrator.analyze("Experienced engineer")
        self.assertEqual(outcome.service_used, "gemini")
        self.assertIsNone(outcome.notice)
        self.assertEqual(self.openai.calls["analyze"], 0)

    async def test_provider_order_is_configurable(self):
        orchestrator = self._build(order=("gemini", "openai"))
        outcome = await orchestrator.analyze("Experienced engineer")
        self.assertEqual(outcome.service_used, "gemini")
        self.assertEqual(self.openai.calls["analyze"], 0)

    async def test_extract_text_skips_providers_without_document_support(self):
        self.openai.text = quota_error("openai")
        outcome = await self.orchestrator.extract_text(b"%PDF-1.4", "application/pdf")
        self.assertEqual(outcome.service_used, "mock")
        self.assertIn("application/pdf", outcome.text)
        self.assertEqual(self.gemini.calls["extract_text"], 0)
        self.assertTrue(self.orchestrator.tracker.is_available("gemini"))

    async def test_extract_text_primary_success(self):
        outcome = await self.orchestrator.extract_text(b"image-bytes", "image/png")
        self.assertEqual(outcome.service_used, "openai")
        self.assertEqual(outcome.text, "Jane Doe\nSenior Engineer")

    async def test_extract_text_requires_bytes(self):
        with self.assertRaises(NoFileProvided):
            await self.orchestrator.extract_text(b"", "application/pdf")

    async def test_probe_before_call_skips_unhealthy_provider(self):
        self.openai.probe_status = ProviderStatus(is_valid=False, message="bad key", code="auth_error")
        orchestrator = self._build(probe_before_call=True)
        outcome = await orchestrator.analyze("Experienced engineer")
        self.assertEqual(outcome.service_used, "gemini")
        self.assertEqual(self.openai.calls["analyze"], 0)
        self.assertEqual(self.openai.calls["probe"], 1)

    async def test_status_refresh_probes_and_reports_preferred(self):
        self.gemini._configured = False
        self.openai.probe_status = ProviderStatus(is_valid=False, message="quota", code="quota_exceeded")
        status = await self.orchestrator.status(refresh=True)
        self.assertFalse(status.openai.is_valid)
        self.assertEqual(status.gemini.code, "key_missing")
        self.assertEqual(status.preferred, "mock")

    async def test_repeated_status_refresh_keeps_preferred_with_primary_down(self):
        self.openai.probe_status = ProviderStatus(is_valid=False, message="bad key", code="auth_error")
        first = await self.orchestrator.status(refresh=True)
        second = await self.orchestrator.status(refresh=True)
        self.assertEqual(first.preferred, "gemini")
        self.assertEqual(second.preferred, first.preferred)

    async def test_repeated_status_refresh_keeps_preferred_with_all_up(self):
        first = await self.orchestrator.status(refresh=True)
        second = await self.orchestrator.status(refresh=True)
        self.assertEqual(first.preferred, "openai")
        self.assertEqual(second.preferred, first.preferred)
        self.assertEqual(self.openai.calls["probe"], 2)

    async def test_status_without_refresh_uses_cached_flags(self):
        status = await self.orchestrator.status(refresh=False)
        self.assertEqual(self.openai.calls["probe"], 0)
        self.assertEqual(status.openai.code, "unchecked")
        self.assertEqual(status.preferred, "openai")

    async def test_reprobe_restores_recovered_provider(self):
        self.openai.analysis = quota_error("openai")
        await self.orchestrator.analyze("Experienced engineer")
        self.assertEqual(self.orchestrator.preferred(), "gemini")
        results = await self.orchestrator.reprobe_down_providers()
        self.assertTrue(results["openai"].is_valid)
        self.assertEqual(self.orchestrator.preferred(), "openai")

    async def test_probe_unknown_provider(self):
        with self.assertRaises(KeyError):
            await self.orchestrator.probe("claude")

    async def test_runs_are_recorded(self):
        self.openai.analysis = quota_error("openai")
        await self.orchestrator.analyze("Experienced engineer")
        self.assertEqual(len(self.runs), 1)
        run = self.runs[0]
        self.assertEqual(run["task"], "analyze")
        self.assertEqual(run["service_used"], "gemini")
        self.assertEqual(run["attempts"], ["openai", "gemini"])
        self.assertTrue(run["degraded"])

    async def test_recorder_failure_does_not_break_task(self):
        def broken(**_):
            raise RuntimeError("db locked")

        orchestrator = self._build(run_recorder=broken)
        outcome = await orchestrator.analyze("Experienced engineer")
        self.assertEqual(outcome.service_used, "openai")


if __name__ == "__main__":
    unittest.main()
