import asyncio
import unittest

from aiohttp.test_utils import TestClient, TestServer

from core.contracts import DeviceStatus
from core.label import LabelBook, build_label_record
from core.lifecycle import LoopRunner
from core.station import StationContext
from output.hmi import HmiOutput
from output.manager import LogStore, OutputManager
from printer.session import PrinterSession, PrinterSessionConfig
from scale.session import ScaleSession, ScaleSessionConfig
from transport.mock import MockTransport


class TestHmiApi(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.loop_runner = LoopRunner()
        self.transports = []
        self.output = OutputManager(LogStore(20))
        book = LabelBook(build_label_record({"tracking_number": "T-1", "date": "d"}))
        self.context = StationContext(
            scale=ScaleSession(
                ScaleSessionConfig(transport="mock", endpoint="mock0", read_timeout_s=0.02),
                book,
                self.output.handle_event,
                loop_runner=self.loop_runner,
                opener=self._opener,
            ),
            printer=PrinterSession(
                PrinterSessionConfig(transport="mock", endpoint="mock0"),
                self.output.handle_event,
                loop_runner=self.loop_runner,
                opener=self._opener,
            ),
            label_book=book,
            output=self.output,
        )
        hmi = HmiOutput("127.0.0.1", 0, self.context, loop_runner=self.loop_runner)
        self.client = TestClient(TestServer(hmi.server.app))
        await self.client.start_server()

    async def asyncTearDown(self):
        await self.client.close()
        await asyncio.to_thread(self.context.scale.disconnect)
        await asyncio.to_thread(self.context.printer.disconnect)
        await asyncio.to_thread(self.loop_runner.shutdown_loop)

    def _opener(self, cfg):
        transport = MockTransport(cfg)
        self.transports.append(transport)
        return transport

    async def test_status_snapshot(self):
        self.output.log("hello")
        resp = await self.client.get("/status")
        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["scale"]["status"], "disconnected")
        self.assertEqual(body["printer"]["status"], "disconnected")
        self.assertEqual(body["label"]["tracking_number"], "T-1")
        self.assertEqual([e["message"] for e in body["logs"]], ["hello"])
        self.assertTrue(body["full_snapshot"])

    async def test_status_since_seq(self):
        self.output.log("one")
        self.output.log("two")
        resp = await self.client.get("/status", params={"since_seq": "1"})
        body = await resp.json()
        self.assertEqual([e["message"] for e in body["logs"]], ["two"])
        self.assertFalse(body["full_snapshot"])

    async def test_clear_logs(self):
        self.output.log("one")
        self.output.log("two")
        resp = await self.client.post("/logs/clear")
        self.assertEqual(resp.status, 200)
        self.assertEqual((await resp.json())["latest_seq"], 2)

        body = await (await self.client.get("/status")).json()
        self.assertEqual(body["logs"], [])
        self.assertEqual(body["latest_seq"], 2)
        self.assertEqual(body["log_stats"]["total"], 2)

    async def test_label_update(self):
        resp = await self.client.post("/label", json={"tracking_number": "NEW-9"})
        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["label"]["barcode"], "NEW-9")
        self.assertEqual(self.context.label_book.get("qr_data"), "https://tracking.post.ir/?id=NEW-9")

    async def test_label_update_rejects_unknown_field(self):
        resp = await self.client.post("/label", json={"nope": "x"})
        self.assertEqual(resp.status, 400)
        resp = await self.client.post("/label", json=["not", "an", "object"])
        self.assertEqual(resp.status, 400)

    async def test_program(self):
        resp = await self.client.get("/program", params={"size": "80x100"})
        self.assertEqual(resp.status, 200)
        text = await resp.text()
        self.assertTrue(text.startswith("SIZE 80 mm,100 mm\n"))
        resp = await self.client.get("/program", params={"size": "1x1"})
        self.assertEqual(resp.status, 400)

    async def test_print_requires_connected_printer(self):
        resp = await self.client.post("/print")
        body = await resp.json()
        self.assertFalse(body["printed"])

        resp = await self.client.post("/printer/connect")
        self.assertTrue((await resp.json())["connected"])
        resp = await self.client.post("/print", json={"copies": 2})
        self.assertTrue((await resp.json())["printed"])
        self.assertTrue(self.transports[-1].written[0].endswith(b"PRINT 2\n"))

    async def test_scale_connect_and_disconnect(self):
        resp = await self.client.post("/scale/connect", json={"baud_rate": 4800})
        body = await resp.json()
        self.assertTrue(body["connected"])
        self.assertEqual(self.context.scale.status, DeviceStatus.CONNECTED)
        self.assertEqual(self.transports[-1].cfg.baud_rate, 4800)

        resp = await self.client.post("/scale/connect")
        self.assertEqual(resp.status, 409)

        resp = await self.client.post("/scale/disconnect")
        self.assertEqual((await resp.json())["status"], "disconnected")

    async def test_scale_connect_rejects_bad_baud(self):
        resp = await self.client.post("/scale/connect", json={"baud_rate": 1234})
        self.assertEqual(resp.status, 400)


if __name__ == "__main__":
    unittest.main()
