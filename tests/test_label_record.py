import unittest
from datetime import datetime

from core.label import LabelBook, LabelRecord, apply_field, build_label_record


class TestApplyField(unittest.TestCase):
    def test_tracking_number_derives_barcode_and_qr(self):
        rec = apply_field(LabelRecord(), "tracking_number", "04515000010732")
        self.assertEqual(rec.barcode, "04515000010732")
        self.assertEqual(rec.qr_data, "https://tracking.post.ir/?id=04515000010732")

    def test_custom_qr_template(self):
        rec = apply_field(
            LabelRecord(),
            "tracking_number",
            "A1",
            qr_template="https://example.test/t/{tracking}",
        )
        self.assertEqual(rec.qr_data, "https://example.test/t/A1")

    def test_manual_barcode_sticks_until_tracking_changes(self):
        rec = apply_field(LabelRecord(), "tracking_number", "111")
        rec = apply_field(rec, "barcode", "CUSTOM")
        rec = apply_field(rec, "weight", "300")
        self.assertEqual(rec.barcode, "CUSTOM")
        rec = apply_field(rec, "tracking_number", "222")
        self.assertEqual(rec.barcode, "222")

    def test_unknown_field_raises(self):
        with self.assertRaises(KeyError):
            apply_field(LabelRecord(), "colour", "red")

    def test_record_is_not_mutated(self):
        original = LabelRecord(weight="1")
        apply_field(original, "weight", "2")
        self.assertEqual(original.weight, "1")


class TestBuildLabelRecord(unittest.TestCase):
    def test_blank_date_and_time_are_stamped(self):
        now = datetime(2025, 7, 13, 13, 30, 5)
        rec = build_label_record({"tracking_number": "9", "date": ""}, now=now)
        self.assertEqual(rec.date, "2025-07-13")
        self.assertEqual(rec.time, "13:30:05")
        self.assertEqual(rec.barcode, "9")

    def test_explicit_derived_fields_win(self):
        rec = build_label_record(
            {"qr_data": "fixed", "tracking_number": "9", "date": "d", "time": "t"}
        )
        self.assertEqual(rec.qr_data, "fixed")
        self.assertEqual(rec.date, "d")

    def test_unknown_defaults_are_rejected(self):
        with self.assertRaises(KeyError):
            build_label_record({"nope": "x"})


class TestLabelBook(unittest.TestCase):
    def test_set_if_changed(self):
        book = LabelBook(LabelRecord(weight="205"))
        self.assertFalse(book.set_if_changed("weight", "205"))
        self.assertTrue(book.set_if_changed("weight", "210"))
        self.assertEqual(book.get("weight"), "210")

    def test_update_many_applies_tracking_first(self):
        book = LabelBook()
        rec = book.update_many({"barcode": "MANUAL", "tracking_number": "55"})
        self.assertEqual(rec.barcode, "MANUAL")
        self.assertEqual(rec.qr_data, "https://tracking.post.ir/?id=55")

    def test_update_many_is_all_or_nothing(self):
        book = LabelBook(LabelRecord(weight="1"))
        with self.assertRaises(KeyError):
            book.update_many({"weight": "2", "bogus": "x"})
        self.assertEqual(book.get("weight"), "1")

    def test_snapshot_is_immutable(self):
        book = LabelBook()
        snap = book.snapshot()
        book.update("order_id", "X")
        self.assertEqual(snap.order_id, "")
        self.assertEqual(book.snapshot().order_id, "X")

    def test_field_names_cover_record(self):
        names = LabelRecord.field_names()
        self.assertEqual(len(names), 19)
        self.assertEqual(set(LabelRecord().to_dict()), set(names))


if __name__ == "__main__":
    unittest.main()
