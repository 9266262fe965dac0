import unittest

from delivery_recon.aggregate import format_year_month, group_by_customer_month, summarize, year_month_of
from delivery_recon.models import Record


def item(product, quantity, amount, customer="", spec="s", unit="u", day="2024-01-05"):
    return Record(
        product_name=product,
        quantity=quantity,
        spec=spec,
        unit=unit,
        amount=amount,
        customer=customer,
        date=day,
    )


class SummarizeTests(unittest.TestCase):
    def test_rows_fold_by_product_spec_and_unit(self):
        rows = summarize([item("A", 10, 100, "C1"), item("A", 5, 60, "C2")])
        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row.key, ("A", "s", "u"))
        self.assertEqual(row.quantity, 15)
        self.assertEqual(row.amount, 160)
        self.assertEqual(row.average_price, 10.67)
        self.assertEqual(row.customers, ["C1", "C2"])
        self.assertEqual(row.customers_label, "C1, C2")

    def test_customers_are_listed_once_in_first_seen_order(self):
        rows = summarize([item("A", 1, 1, "C2"), item("A", 1, 1, "C1"), item("A", 1, 1, "C2"), item("A", 1, 1, "")])
        self.assertEqual(rows[0].customers, ["C2", "C1"])

    def test_different_spec_or_unit_is_a_separate_row(self):
        rows = summarize([item("A", 1, 5), item("A", 1, 5, spec="t"), item("A", 1, 5, unit="box")])
        self.assertEqual(len(rows), 3)

    def test_sorted_by_amount_with_stable_ties(self):
        rows = summarize([item("low", 1, 1), item("tie-1", 1, 50), item("high", 1, 99), item("tie-2", 1, 50)])
        self.assertEqual([row.product_name for row in rows], ["high", "tie-1", "tie-2", "low"])

    def test_zero_quantity_has_zero_average(self):
        rows = summarize([item("A", 0, 10)])
        self.assertEqual(rows[0].average_price, 0.0)

    def test_empty_input(self):
        self.assertEqual(summarize([]), [])


class YearMonthTests(unittest.TestCase):
    def test_accepted_formats(self):
        self.assertEqual(year_month_of("2024-03-15"), "2024-03")
        self.assertEqual(year_month_of("2024/3/5"), "2024-03")
        self.assertEqual(year_month_of("2024年3月5日"), "2024-03")
        self.assertEqual(year_month_of("2024-03-15 08:00:00"), "2024-03")

    def test_fallback_prefix_and_unknown(self):
        self.assertEqual(year_month_of("2024-13-40"), "2024-13")
        self.assertEqual(year_month_of("soon"), "unknown")
        self.assertEqual(year_month_of(""), "unknown")

    def test_group_by_customer_month(self):
        records = [
            item("A", 1, 1, "Acme", day="2024-01-05"),
            item("B", 1, 1, "Acme", day="2024-01-30"),
            item("C", 1, 1, "Acme", day="2024-02-01"),
            item("D", 1, 1, "Bright", day="bad"),
        ]
        groups = group_by_customer_month(records)
        self.assertEqual(
            {key: [r.product_name for r in value] for key, value in groups.items()},
            {
                ("Acme", "2024-01"): ["A", "B"],
                ("Acme", "2024-02"): ["C"],
                ("Bright", "unknown"): ["D"],
            },
        )

    def test_format_year_month(self):
        self.assertEqual(format_year_month("2024-01"), "2024年1月")
        self.assertEqual(format_year_month("2024-12"), "2024年12月")
        self.assertEqual(format_year_month("unknown"), "unknown")


if __name__ == "__main__":
    unittest.main()
