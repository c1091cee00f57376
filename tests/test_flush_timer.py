import asyncio
import unittest

from scale.flush import FlushTimer


class TestFlushTimer(unittest.IsolatedAsyncioTestCase):
    async def test_fires_once_after_quiet_period(self):
        calls = []
        timer = FlushTimer(0.03, lambda: calls.append(1))
        timer.arm()
        self.assertTrue(timer.armed)
        await asyncio.sleep(0.1)
        self.assertEqual(calls, [1])
        self.assertFalse(timer.armed)
        self.assertEqual(timer.fired_count, 1)

    async def test_rearm_postpones_deadline(self):
        calls = []
        timer = FlushTimer(0.08, lambda: calls.append(1))
        timer.arm()
        for _ in range(4):
            await asyncio.sleep(0.04)
            timer.arm()
        self.assertEqual(calls, [])
        await asyncio.sleep(0.15)
        self.assertEqual(calls, [1])

    async def test_disarm_prevents_fire(self):
        calls = []
        timer = FlushTimer(0.03, lambda: calls.append(1))
        timer.arm()
        timer.disarm()
        timer.disarm()
        await asyncio.sleep(0.08)
        self.assertEqual(calls, [])
        self.assertEqual(timer.fired_count, 0)

    async def test_callback_error_is_logged(self):
        def _boom():
            raise RuntimeError("boom")

        timer = FlushTimer(0.01, _boom)
        with self.assertLogs("label_station.scale.flush", level="ERROR"):
            timer.arm()
            await asyncio.sleep(0.05)
        self.assertEqual(timer.fired_count, 1)


if __name__ == "__main__":
    unittest.main()
