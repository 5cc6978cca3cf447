#!/usr/bin/env python3
"""
Tests for the retry policy / exponential backoff helper.

Run:
    python -m pytest tests/test_retry.py -v
"""

import unittest

from core.retry import RetriesExhausted, RetryPolicy, retry_async


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class TestRetryPolicy(unittest.TestCase):
    def test_delay_doubles_per_attempt(self):
        policy = RetryPolicy(max_attempts=4, base_backoff=1.0)
        self.assertEqual([policy.delay(i) for i in range(3)], [1.0, 2.0, 4.0])

    def test_delays_one_per_retry(self):
        self.assertEqual(RetryPolicy(3, 0.5).delays(), [0.5, 1.0])
        self.assertEqual(RetryPolicy(1, 0.5).delays(), [])

    def test_rejects_invalid_values(self):
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=3, base_backoff=-1)


class TestRetryAsync(unittest.IsolatedAsyncioTestCase):
    async def test_returns_first_success_without_sleeping(self):
        sleep = RecordingSleep()

        async def ok():
            return "done"

        self.assertEqual(await retry_async(ok, RetryPolicy(3, 1.0), sleep=sleep), "done")
        self.assertEqual(sleep.calls, [])

    async def test_backs_off_between_failures(self):
        sleep = RecordingSleep()
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("nope")
            return 42

        result = await retry_async(flaky, RetryPolicy(3, 1.0), sleep=sleep)
        self.assertEqual(result, 42)
        self.assertEqual(len(attempts), 3)
        self.assertEqual(sleep.calls, [1.0, 2.0])

    async def test_exhausted_reports_last_error_and_skips_final_sleep(self):
        sleep = RecordingSleep()
        errors = [ValueError("first"), ValueError("second"), ValueError("third")]

        async def always_fails():
            raise errors.pop(0)

        with self.assertRaises(RetriesExhausted) as ctx:
            await retry_async(always_fails, RetryPolicy(3, 1.0), sleep=sleep)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(str(ctx.exception.last_error), "third")
        self.assertEqual(sleep.calls, [1.0, 2.0])

    async def test_unlisted_exception_is_not_retried(self):
        sleep = RecordingSleep()
        calls = []

        async def broken():
            calls.append(1)
            raise KeyError("bug")

        with self.assertRaises(KeyError):
            await retry_async(broken, RetryPolicy(3, 1.0), retry_on=(ConnectionError,), sleep=sleep)
        self.assertEqual(len(calls), 1)
        self.assertEqual(sleep.calls, [])


if __name__ == "__main__":
    unittest.main()
