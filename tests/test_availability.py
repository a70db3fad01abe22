import unittest

from app.ai.availability import AvailabilityTracker
from app.schemas.ai import ProviderStatus

from fakes import FakeProvider


class AvailabilityTrackerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.provider = FakeProvider("openai")
        self.tracker = AvailabilityTracker({"openai": self.provider}, probe_timeout_s=0.05)

    async def test_flags_start_available_and_unknown_names_are_available(self):
        self.assertTrue(self.tracker.is_available("openai"))
        self.assertEqual(self.tracker.get_status("openai").code, "unchecked")
        self.assertTrue(self.tracker.is_available("something-else"))

    async def test_mark_down_then_up(self):
        self.tracker.mark_down("openai", ProviderStatus(is_valid=False, message="quota", code="quota_exceeded"))
        self.assertFalse(self.tracker.is_available("openai"))
        self.assertEqual(self.tracker.down_providers(), ["openai"])
        self.tracker.mark_up("openai")
        self.assertTrue(self.tracker.is_available("openai"))
        self.assertEqual(self.tracker.get_status("openai").code, "ok")

    async def test_mark_down_forces_invalid_status(self):
        self.tracker.mark_down("openai", ProviderStatus(is_valid=True, message="odd", code="unknown_error"))
        self.assertFalse(self.tracker.get_status("openai").is_valid)

    async def test_successful_probe_recovers_provider(self):
        self.tracker.mark_down("openai")
        status = await self.tracker.probe("openai")
        self.assertTrue(status.is_valid)
        self.assertTrue(self.tracker.is_available("openai"))
        self.assertEqual(self.provider.calls["probe"], 1)

    async def test_failed_probe_marks_down(self):
        self.provider.probe_status = ProviderStatus(is_valid=False, message="bad key", code="auth_error")
        status = await self.tracker.probe("openai")
        self.assertEqual(status.code, "auth_error")
        self.assertFalse(self.tracker.is_available("openai"))

    async def test_probe_timeout_marks_down(self):
        self.provider.delay = 1.0
        status = await self.tracker.probe("openai")
        self.assertEqual(status.code, "timeout")
        self.assertFalse(self.tracker.is_available("openai"))

    async def test_probe_exception_is_classified(self):
        self.provider.probe_status = ConnectionError("connection refused")
        status = await self.tracker.probe("openai")
        self.assertEqual(status.code, "transport_error")
        self.assertFalse(status.is_valid)

    async def test_probe_unknown_provider(self):
        with self.assertRaises(KeyError):
            await self.tracker.probe("nope")

    async def test_reset(self):
        self.tracker.mark_down("openai")
        self.tracker.reset()
        self.assertEqual(self.tracker.snapshot()["openai"].code, "unchecked")


if __name__ == "__main__":
    unittest.main()
