import tempfile
import unittest
from pathlib import Path

from openpyxl import Workbook

from delivery_recon.models import FileBatch, ReconciliationResult, Record, ValidationIssue
from delivery_recon.reconcile import (
    MISSING_ROOT_MESSAGE,
    build_scan_result,
    collect_batches,
    reconcile,
    scan,
    scan_root,
    validate_files,
)

HEADER = ["品名", "规格", "数量", "单位", "单价", "金额"]


def write_slip(path: Path, customer: str, slip_date: str, delivery_no: str, items: list[list]) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    ws = wb.active
    ws.append([f"客户：{customer}", None, f"日期：{slip_date}"])
    ws.append([f"送货单号：{delivery_no}"])
    ws.append(HEADER)
    for item in items:
        ws.append(item)
    wb.save(path)
    return str(path)


def record(product: str, source: str, customer: str = "Acme", day: str = "2024-01-05", delivery_no: str = "DN-001"):
    return Record(
        product_name=product,
        quantity=1.0,
        customer=customer,
        date=day,
        delivery_order_no=delivery_no,
        source_file=source,
    )


class ReconcileBatchTests(unittest.TestCase):
    def test_duplicate_delivery_number_across_files_warns_once_on_the_later_file(self):
        first = FileBatch("in/2024-01-05-a.xlsx", "monthly", (record("Bolt", "in/2024-01-05-a.xlsx"),))
        second = FileBatch(
            "in/2024-01-06-b.xlsx",
            "monthly",
            (
                record("Nut", "in/2024-01-06-b.xlsx", day="2024-01-06"),
                record("Washer", "in/2024-01-06-b.xlsx", day="2024-01-06"),
            ),
        )
        result = reconcile([first, second])

        self.assertEqual(result.errors, [])
        self.assertEqual(len(result.accepted), 3)
        self.assertEqual(len(result.warnings), 1)
        warning = result.warnings[0]
        self.assertEqual(warning.file, "in/2024-01-06-b.xlsx")
        self.assertEqual(warning.issue_id, "duplicate_order_no")
        self.assertEqual(
            warning.message,
            "duplicate delivery order number: customer 'Acme' order 'DN-001' already appears in '2024-01-05-a.xlsx'",
        )

    def test_repeated_number_inside_one_file_is_not_a_duplicate(self):
        batch = FileBatch("a.xlsx", "monthly", (record("Bolt", "a.xlsx"), record("Nut", "a.xlsx")))
        result = reconcile([batch])
        self.assertEqual(result.warnings, [])
        self.assertEqual(len(result.accepted), 2)

    def test_same_number_for_different_customers_is_allowed(self):
        result = reconcile(
            [
                FileBatch("a.xlsx", "monthly", (record("Bolt", "a.xlsx", customer="Acme"),)),
                FileBatch("b.xlsx", "monthly", (record("Bolt", "b.xlsx", customer="Bright"),)),
            ]
        )
        self.assertEqual(result.warnings, [])

    def test_invalid_date_rejects_the_whole_file(self):
        bad = FileBatch(
            "bad.xlsx",
            "monthly",
            (record("Bolt", "bad.xlsx", day="2024-02-30"), record("Nut", "bad.xlsx", day="2024-02-30")),
        )
        good = FileBatch("good.xlsx", "monthly", (record("Screw", "good.xlsx", delivery_no="DN-9"),))
        result = reconcile([bad, good])

        self.assertEqual([r.product_name for r in result.accepted], ["Screw"])
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].file, "bad.xlsx")
        self.assertEqual(result.errors[0].severity, "error")
        self.assertIn("invalid date '2024-02-30'", result.errors[0].message)

    def test_missing_date_is_an_error(self):
        result = reconcile([FileBatch("a.xlsx", "monthly", (record("Bolt", "a.xlsx", day=""),))])
        self.assertEqual(result.accepted, [])
        self.assertEqual(result.errors[0].issue_id, "invalid_date")

    def test_filename_date_mismatch_warns_but_accepts(self):
        batch = FileBatch("2024-01-05-a.xlsx", "monthly", (record("Bolt", "2024-01-05-a.xlsx", day="2024/01/07"),))
        result = reconcile([batch])
        self.assertEqual(len(result.accepted), 1)
        self.assertEqual(
            [w.message for w in result.warnings],
            ["date mismatch: filename date (2024-01-05) differs from content date (2024-01-07)"],
        )

    def test_failed_and_empty_batches(self):
        result = reconcile(
            [
                FileBatch("broken.xlsx", "monthly", failure="Could not open workbook: bad zip"),
                FileBatch("empty.xlsx", "monthly"),
            ]
        )
        self.assertEqual([e.message for e in result.errors], ["parse failed: Could not open workbook: bad zip"])
        self.assertEqual([w.message for w in result.warnings], ["file contains no valid data or layout mismatch"])

    def test_warnings_are_deduplicated_and_sorted(self):
        result = reconcile(
            [
                FileBatch("z.xlsx", "monthly"),
                FileBatch(
                    "2024-01-05-m.xlsx",
                    "monthly",
                    (
                        record("Bolt", "2024-01-05-m.xlsx", day="2024-01-06"),
                        record("Nut", "2024-01-05-m.xlsx", day="2024-01-06"),
                    ),
                ),
                FileBatch("a.xlsx", "monthly"),
            ]
        )
        self.assertEqual([w.file for w in result.warnings], ["2024-01-05-m.xlsx", "a.xlsx", "z.xlsx"])


class ScanResultTests(unittest.TestCase):
    def test_no_files(self):
        scan_result = build_scan_result(0, ReconciliationResult())
        self.assertTrue(scan_result.success)
        self.assertEqual(scan_result.message, "no spreadsheet files found")

    def test_errors_fail_the_scan(self):
        issue = ValidationIssue("a.xlsx", "parse failed: x", "error", "parse_failed")
        scan_result = build_scan_result(2, ReconciliationResult(errors=[issue]))
        self.assertFalse(scan_result.success)
        self.assertEqual(scan_result.message, "1 file(s) have problems")

    def test_warnings_and_valid_file_count(self):
        issue = ValidationIssue("b.xlsx", "file contains no valid data or layout mismatch")
        accepted = [record("Bolt", "a.xlsx"), record("Nut", "a.xlsx")]
        scan_result = build_scan_result(2, ReconciliationResult(accepted=accepted, warnings=[issue]))
        self.assertTrue(scan_result.success)
        self.assertEqual(scan_result.message, "validation passed with 1 warning(s)")
        self.assertEqual(scan_result.valid_files, 1)
        self.assertEqual(scan_result.total_files, 2)
        self.assertEqual(len(scan_result.to_dict()["items"]), 2)

    def test_clean_scan(self):
        scan_result = build_scan_result(1, ReconciliationResult(accepted=[record("Bolt", "a.xlsx")]))
        self.assertEqual(scan_result.message, "all files passed validation")


class ValidateFilesTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.files = [
            (write_slip(root / "2024-01-05-a.xlsx", "Acme", "2024-01-05", "DN-001", [["Bolt", "M8", 10, "pcs", 1, 10]]), "monthly"),
            (write_slip(root / "2024-01-06-b.xlsx", "Acme", "2024-01-06", "DN-001", [["Nut", "M8", 5, "pcs", 2, 10]]), "monthly"),
            (write_slip(root / "2024-01-07-c.xlsx", "Acme", "2024-02-30", "DN-002", [["Glue", "", 1, "tube", 4, 4]]), "cash"),
            (write_slip(root / "2024-01-08-d.xlsx", "Bright", "2024-01-08", "DN-003", []), "cash"),
        ]
        broken = root / "broken.xlsx"
        broken.write_bytes(b"not a workbook")
        self.files.append((str(broken), "cash"))

    def tearDown(self):
        self._tmp.cleanup()

    def test_end_to_end_partition(self):
        result = validate_files(self.files)

        self.assertEqual([r.product_name for r in result.accepted], ["Bolt", "Nut"])
        self.assertEqual([e.issue_id for e in result.errors], ["invalid_date", "parse_failed"])
        self.assertEqual(
            sorted(w.issue_id for w in result.warnings),
            ["duplicate_order_no", "empty_file"],
        )

    def test_threaded_collection_matches_sequential(self):
        sequential = validate_files(self.files, workers=1)
        threaded = validate_files(self.files, workers=4)
        self.assertEqual(threaded.accepted, sequential.accepted)
        self.assertEqual(threaded.errors, sequential.errors)
        self.assertEqual(threaded.warnings, sequential.warnings)

    def test_batches_keep_input_order(self):
        batches = collect_batches(self.files, workers=3)
        self.assertEqual([b.path for b in batches], [path for path, _ in self.files])
        self.assertTrue(batches[-1].failed)

    def test_scan_counts(self):
        scan_result = scan(self.files)
        self.assertFalse(scan_result.success)
        self.assertEqual(scan_result.total_files, 5)
        self.assertEqual(scan_result.valid_files, 2)
        self.assertEqual(scan_result.message, "2 file(s) have problems")


class ScanRootTests(unittest.TestCase):
    def test_missing_root_is_a_failed_scan(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            scan_result = scan_root(Path(tmpdir) / "nope")
        self.assertFalse(scan_result.success)
        self.assertEqual(scan_result.message, MISSING_ROOT_MESSAGE)
        self.assertEqual(scan_result.message, "input directory missing")
        self.assertEqual((scan_result.total_files, scan_result.valid_files), (0, 0))
        self.assertEqual((scan_result.errors, scan_result.warnings, scan_result.items), ([], [], []))

    def test_root_is_discovered_and_scanned(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            write_slip(root / "monthly" / "2024-01-05-a.xlsx", "Acme", "2024-01-05", "DN-001", [["Bolt", "M8", 10, "pcs", 1, 10]])
            write_slip(root / "cash" / "2024-01-06-b.xlsx", "Bright", "2024-01-06", "C-1", [["Nut", "M8", 2, "pcs", 1, 2]])
            scan_result = scan_root(str(root), workers=2)
        self.assertTrue(scan_result.success)
        self.assertEqual(scan_result.message, "all files passed validation")
        self.assertEqual((scan_result.total_files, scan_result.valid_files), (2, 2))
        self.assertEqual(sorted(item.customer_type for item in scan_result.items), ["cash", "monthly"])

    def test_empty_root_is_not_missing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            scan_result = scan_root(tmpdir)
        self.assertTrue(scan_result.success)
        self.assertEqual(scan_result.message, "no spreadsheet files found")

    def test_shared_metadata_cell_is_accepted(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "monthly" / "2024-01-05-acme.xlsx"
            path.parent.mkdir()
            wb = Workbook()
            ws = wb.active
            ws.append(["客户：Acme"])
            ws.append(["送货单号：DN-1  日期：2024-01-05"])
            ws.append(HEADER)
            ws.append(["Bolt", "M8", 10, "pcs", 1, 10])
            wb.save(path)
            scan_result = scan_root(tmpdir)
        self.assertEqual(scan_result.errors, [])
        self.assertEqual(scan_result.warnings, [])
        [item] = scan_result.items
        self.assertEqual((item.customer, item.date, item.delivery_order_no), ("Acme", "2024-01-05", "DN-1"))


if __name__ == "__main__":
    unittest.main()
