import tempfile
import unittest
from pathlib import Path

import pandas as pd

from delivery_recon.aggregate import summarize
from delivery_recon.export import RECORD_COLUMNS, write_export
from delivery_recon.models import Record, ValidationIssue

RECORDS = [
    Record(product_name="Bolt", quantity=10, spec="M8", unit="pcs", amount=100, customer="Acme", date="2024-01-05"),
    Record(product_name="Bolt", quantity=5, spec="M8", unit="pcs", amount=60, customer="Bright", date="2024-01-06"),
]
ISSUES = [ValidationIssue("b.xlsx", "file contains no valid data or layout mismatch", "warning", "empty_file")]


class WriteExportTests(unittest.TestCase):
    def test_xlsx_export_has_one_sheet_per_table(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "out" / "export.xlsx"
            manifest = write_export(output, RECORDS, summarize(RECORDS), ISSUES)
            self.assertEqual(manifest, {"workbook": str(output)})

            sheets = pd.read_excel(output, sheet_name=None)
            self.assertEqual(list(sheets), ["Records", "Summary", "Issues"])
            self.assertEqual(list(sheets["Records"].columns), RECORD_COLUMNS)
            self.assertEqual(len(sheets["Records"]), 2)
            summary = sheets["Summary"]
            self.assertEqual(summary.loc[0, "quantity"], 15)
            self.assertEqual(summary.loc[0, "customers"], "Acme, Bright")
            self.assertEqual(sheets["Issues"].loc[0, "issue_id"], "empty_file")

    def test_csv_export_writes_companion_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "export.csv"
            manifest = write_export(output, RECORDS, summarize(RECORDS))
            self.assertEqual(
                manifest,
                {
                    "records": str(output),
                    "summary": str(Path(tmpdir) / "export_summary.csv"),
                    "issues": str(Path(tmpdir) / "export_issues.csv"),
                },
            )
            records = pd.read_csv(output, encoding="utf-8-sig")
            self.assertEqual(records["product_name"].tolist(), ["Bolt", "Bolt"])
            issues = pd.read_csv(Path(tmpdir) / "export_issues.csv", encoding="utf-8-sig")
            self.assertTrue(issues.empty)

    def test_unsupported_suffix(self):
        with self.assertRaisesRegex(ValueError, "Unsupported export format"):
            write_export("export.json", RECORDS, [])


if __name__ == "__main__":
    unittest.main()
