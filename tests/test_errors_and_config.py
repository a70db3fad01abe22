import asyncio
import os
import unittest
from unittest.mock import patch

from app.ai.config import load_ai_config
from app.ai.errors import ProviderUnavailable, classify_provider_error, describe_provider_error


class ClassifyProviderErrorTests(unittest.TestCase):
    def test_timeout(self):
        self.assertEqual(classify_provider_error(asyncio.TimeoutError()), "timeout")

    def test_quota_and_auth_from_message(self):
        self.assertEqual(classify_provider_error(Exception("429 RESOURCE_EXHAUSTED")), "quota_exceeded")
        self.assertEqual(classify_provider_error(Exception("401 Unauthorized")), "auth_error")

    def test_transport_and_unknown(self):
        self.assertEqual(classify_provider_error(ConnectionError("reset")), "transport_error")
        self.assertEqual(classify_provider_error(ValueError("boom")), "unknown_error")

    def test_provider_unavailable_keeps_code(self):
        exc = ProviderUnavailable("gemini", "empty", code="empty_response")
        self.assertEqual(classify_provider_error(exc), "empty_response")

    def test_describe_missing_key(self):
        message = describe_provider_error("openai", "key_missing")
        self.assertIn("OPENAI_API_KEY", message)
        self.assertIn("GEMINI_API_KEY", describe_provider_error("gemini", "key_missing"))


class AIConfigTests(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {"AI_PROVIDER_ORDER": "", "AI_TIMEOUT_S": ""}):
            cfg = load_ai_config()
        self.assertEqual(cfg.provider_order, ("openai", "gemini"))
        self.assertEqual(cfg.timeout_s, 30.0)
        self.assertFalse(cfg.gemini_document_extraction)

    def test_custom_order(self):
        with patch.dict(os.environ, {"AI_PROVIDER_ORDER": "Gemini, openai"}):
            self.assertEqual(load_ai_config().provider_order, ("gemini", "openai"))

    def test_unknown_provider_rejected(self):
        with patch.dict(os.environ, {"AI_PROVIDER_ORDER": "openai,claude"}):
            with self.assertRaises(ValueError):
                load_ai_config()

    def test_placeholder_keys_count_as_missing(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "your_openai_key_here", "GEMINI_API_KEY": " real-key "}):
            cfg = load_ai_config()
        self.assertIsNone(cfg.openai_api_key)
        self.assertEqual(cfg.gemini_api_key, "real-key")


class HttpSettingsTests(unittest.TestCase):
    def test_cors_options_follow_settings(self):
        from app.core.cors import cors_options

        options = cors_options()
        self.assertIn("http://localhost:5173", options["allow_origins"])
        self.assertIsNone(options["allow_origin_regex"])

    def test_rate_limit_is_identity_when_disabled(self):
        from app.core.rate_limit import rate_limit

        def endpoint():
            return "ok"

        self.assertIs(rate_limit("1/minute")(endpoint), endpoint)


if __name__ == "__main__":
    unittest.main()
