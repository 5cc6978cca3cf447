#!/usr/bin/env python3
"""
Tests for error_map.py - every upstream failure kind is registered, logged
with its detail and rendered to callers as the same envelope.

Usage:
    python -m pytest tests/test_error_map.py -v
"""

import logging
import unittest

from core.error_map import (
    ERROR_MAP,
    PUBLIC_ERROR,
    ForbiddenFetch,
    GenericFetchError,
    RefreshFailure,
    UpstreamError,
    error_response_body,
    log_error,
)

KINDS = (RefreshFailure, ForbiddenFetch, GenericFetchError)


class TestErrorMap(unittest.TestCase):
    def test_every_kind_is_registered(self):
        for cls in KINDS:
            self.assertIn(cls.kind, ERROR_MAP, cls.__name__)

    def test_entries_are_complete(self):
        for kind, info in ERROR_MAP.items():
            self.assertEqual(info.kind, kind)
            self.assertTrue(info.constant.startswith("E"))
            self.assertIn(info.severity, {"warning", "error"})
            self.assertTrue(info.dev_message)
            self.assertTrue(info.recovery)

    def test_kinds_share_the_base_class(self):
        for cls in KINDS:
            self.assertTrue(issubclass(cls, UpstreamError))

    def test_status_code_is_kept(self):
        self.assertEqual(ForbiddenFetch("x", status_code=403).status_code, 403)
        self.assertIsNone(GenericFetchError("x").status_code)


class TestEnvelope(unittest.TestCase):
    def test_envelope_shape(self):
        body = error_response_body()
        self.assertEqual(set(body), {"error", "message"})
        self.assertEqual(body["error"], PUBLIC_ERROR)

    def test_custom_message(self):
        self.assertEqual(error_response_body("down")["message"], "down")


class TestLogError(unittest.TestCase):
    def test_forbidden_logs_warning_with_status(self):
        with self.assertLogs("core.error_map", level="WARNING") as logs:
            log_error("/api/nifty50", ForbiddenFetch("GET x returned HTTP 403", status_code=403))
        self.assertEqual(logs.records[0].levelno, logging.WARNING)
        self.assertIn("EForbidden [HTTP 403]", logs.output[0])

    def test_refresh_failure_logs_error(self):
        with self.assertLogs("core.error_map", level="ERROR") as logs:
            log_error("/api/stock/TCS", RefreshFailure("gave up"))
        self.assertIn("ERefreshFailed", logs.output[0])
        self.assertIn("/api/stock/TCS", logs.output[0])

    def test_unknown_error_still_logged(self):
        with self.assertLogs("core.error_map", level="ERROR") as logs:
            log_error("ctx", RuntimeError("boom"))
        self.assertIn("Unexpected error: boom", logs.output[0])


if __name__ == "__main__":
    unittest.main()
