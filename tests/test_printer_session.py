import threading
import unittest

from core.contracts import DeviceStatus
from core.label import build_label_record
from core.lifecycle import LoopRunner
from printer.session import PrinterSession, PrinterSessionConfig
from printer.tspl import build_program
from transport import WriteFault
from transport.mock import MockTransport


class TestPrinterSession(unittest.TestCase):
    def setUp(self):
        self.loop_runner = LoopRunner()
        self.addCleanup(self.loop_runner.shutdown_loop)
        self.transports: list[MockTransport] = []
        self._lock = threading.Lock()
        self.events = []
        self.session = PrinterSession(
            PrinterSessionConfig(
                transport="mock", endpoint="mock0", label_size="100x80", copies=1
            ),
            self._on_event,
            loop_runner=self.loop_runner,
            opener=self._opener,
        )
        self.addCleanup(self.session.disconnect)
        self.record = build_label_record(
            {"tracking_number": "04515000010732", "weight": "205", "date": "d"}
        )

    def _on_event(self, event):
        with self._lock:
            self.events.append(event)

    def _opener(self, cfg):
        transport = MockTransport(cfg)
        self.transports.append(transport)
        return transport

    def _kinds(self, kind):
        with self._lock:
            return [e for e in self.events if e.kind == kind]

    def test_print_writes_one_program(self):
        self.assertTrue(self.session.connect())
        self.assertTrue(self.session.print_label(self.record))

        written = self.transports[0].written
        self.assertEqual(len(written), 1)
        self.assertEqual(
            written[0].decode("utf-8"), build_program(self.record, "100x80", copies=1)
        )
        self.assertEqual(self.session.jobs_sent, 1)
        self.assertEqual(self._kinds("write_succeeded")[0].message, "TSPL Command Sent")

    def test_size_and_copies_override(self):
        self.session.connect()
        self.session.print_label(self.record, size="100x100", copies=2)
        text = self.transports[0].written[0].decode("utf-8")
        self.assertTrue(text.startswith("SIZE 100 mm,100 mm\n"))
        self.assertTrue(text.endswith("PRINT 2\n"))

    def test_print_without_connection_fails(self):
        self.assertFalse(self.session.print_label(self.record))
        failures = self._kinds("write_failed")
        self.assertEqual(len(failures), 1)
        self.assertIn("not connected", failures[0].message)

    def test_missing_tracking_number_is_rejected(self):
        self.session.connect()
        blank = build_label_record({"weight": "205"})
        self.assertFalse(self.session.print_label(blank))
        self.assertEqual(self.transports[0].written, [])
        self.assertIn("Tracking Number is required", self._kinds("write_failed")[0].message)

    def test_write_fault_keeps_transport_open(self):
        self.session.connect()
        transport = self.transports[0]
        transport.fail_write = OSError("paper out")

        self.assertFalse(self.session.print_label(self.record))
        self.assertEqual(self.session.status, DeviceStatus.CONNECTED)
        self.assertTrue(transport.is_open)
        self.assertIsInstance(self.session.last_error, WriteFault)
        self.assertTrue(self._kinds("write_failed")[0].message.startswith("Print Failed"))

        transport.fail_write = None
        self.assertTrue(self.session.print_label(self.record))
        self.assertEqual(len(transport.written), 1)

    def test_disconnect(self):
        self.session.connect()
        self.session.disconnect()
        self.assertEqual(self.session.status, DeviceStatus.DISCONNECTED)
        self.assertEqual(self.transports[0].close_count, 1)
        self.assertFalse(self.session.print_label(self.record))

    def test_unencodable_program_is_reported(self):
        session = PrinterSession(
            PrinterSessionConfig(transport="mock", endpoint="mock0", encoding="ascii"),
            self._on_event,
            loop_runner=self.loop_runner,
            opener=self._opener,
        )
        self.addCleanup(session.disconnect)
        session.connect()
        self.assertFalse(session.print_program("TEXT 0,0,\"2\",0,1,1,\"پ\"\n"))
        self.assertEqual(self.transports[-1].written, [])
        self.assertEqual(session.status, DeviceStatus.CONNECTED)


if __name__ == "__main__":
    unittest.main()
