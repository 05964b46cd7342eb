from __future__ import annotations

import unittest

from cardsheet.models import Table
from cardsheet.normalize import normalize_matrix


def sample_table() -> Table:
    return Table.from_records(
        ["SKU", "Name", "Price"],
        [
            {"SKU": "A1", "Name": "Widget", "Price": 9.99},
            {"SKU": "A2", "Name": "Gadget", "Price": 10.0},
            {"SKU": "A3", "Name": None},
        ],
    )


class TableTests(unittest.TestCase):
    def test_from_records_fills_every_header_with_text(self):
        table = sample_table()
        self.assertEqual(table.rows[1], {"SKU": "A2", "Name": "Gadget", "Price": "10"})
        self.assertEqual(table.rows[2], {"SKU": "A3", "Name": "", "Price": ""})

    def test_with_value_returns_new_table(self):
        table = sample_table()
        edited = table.with_value(0, "Price", "12.50")
        self.assertEqual(edited.rows[0]["Price"], "12.50")
        self.assertEqual(table.rows[0]["Price"], "9.99")
        self.assertEqual(edited.headers, table.headers)

    def test_with_value_clamps_row_index(self):
        table = sample_table()
        self.assertEqual(table.with_value(99, "SKU", "Z").rows[2]["SKU"], "Z")
        self.assertEqual(table.with_value(-5, "SKU", "Z").rows[0]["SKU"], "Z")

    def test_with_value_rejects_unknown_column(self):
        with self.assertRaises(KeyError):
            sample_table().with_value(0, "Colour", "Red")

    def test_with_value_on_empty_table_is_a_no_op(self):
        table = Table.from_records(["SKU"], [])
        self.assertIs(table.with_value(0, "SKU", "x"), table)

    def test_preview_limits_rows_and_columns(self):
        preview = sample_table().preview(max_rows=2, max_columns=2)
        self.assertEqual(list(preview.columns), ["SKU", "Name"])
        self.assertEqual(len(preview), 2)

    def test_dataframe_collapses_duplicate_headers(self):
        table = normalize_matrix(
            [["Group A", "", "Group A"], ["SKU", "Name", "Price"]], header_row_index=0
        ).table
        frame = table.to_dataframe()
        self.assertEqual(list(frame.columns), ["Group A", "Column 2"])
        self.assertEqual(frame.iloc[0]["Group A"], "Price")

    def test_normalization_summary_is_serialisable(self):
        result = normalize_matrix([["Group A", "", "Group A"], ["SKU", "Name", "Price"], ["A1", "Widget", "9.99"]])
        payload = result.to_dict()
        self.assertEqual(payload["headers"], ["SKU", "Name", "Price"])
        self.assertEqual(payload["decision"]["header_row_index"], 1)
        self.assertTrue(payload["decision"]["accepted"])
        self.assertIsNone(payload["rescan"])


if __name__ == "__main__":
    unittest.main()
