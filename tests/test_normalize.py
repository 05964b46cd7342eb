from __future__ import annotations

import unittest

from cardsheet.config import ScoringConfig
from cardsheet.errors import EmptyInputError, EmptySheetError, NoHeadersError
from cardsheet.loader import records_from_matrix
from cardsheet.models import RescanAccepted, RescanRejected, Table
from cardsheet.normalize import (
    matrix_to_table,
    normalize_matrix,
    normalize_records,
    normalize_table,
    rescan_header,
)

SCENARIO_A = [["Group A", "", "Group A"], ["SKU", "Name", "Price"], ["A1", "Widget", "9.99"]]


class MatrixNormalizationTests(unittest.TestCase):
    def test_group_row_is_skipped_and_header_detected(self):
        result = normalize_matrix(SCENARIO_A)
        self.assertEqual(result.table.headers, ("SKU", "Name", "Price"))
        self.assertEqual(result.table.records(), [{"SKU": "A1", "Name": "Widget", "Price": "9.99"}])
        self.assertEqual(result.decision.header_row_index, 1)
        self.assertTrue(result.helper_filter_applied)
        self.assertEqual(result.warnings, [])

    def test_blank_row_is_dropped(self):
        matrix = [["SKU", "Name", "Price"], ["", "", ""], ["A1", "Widget", "9.99"]]
        result = normalize_matrix(matrix)
        self.assertEqual(len(result.table), 1)
        self.assertEqual(result.dropped_rows, 1)
        self.assertIn("Dropped 1 empty or instruction row(s).", result.warnings)

    def test_helper_row_is_dropped_even_when_filled(self):
        matrix = [
            ["SKU", "Name", "Price"],
            ["A3", "please fill in the product name", "1"],
            ["A1", "Widget", "9.99"],
        ]
        table = matrix_to_table(matrix)
        self.assertEqual([row["SKU"] for row in table.rows], ["A1"])

    def test_placeholder_header_cells_get_positional_names(self):
        matrix = [["SKU", "__EMPTY", "Price", "Name"], ["A1", "x", "9", "W"]]
        table = matrix_to_table(matrix)
        self.assertEqual(table.headers, ("SKU", "Column 2", "Price", "Name"))
        self.assertEqual(table.fallback_headers, frozenset({"Column 2"}))
        self.assertFalse(table.is_low_confidence)

    def test_blank_column_without_data_is_dropped(self):
        matrix = [["SKU", "", "Name", "Price"], ["A1", "", "Widget", "9.99"]]
        self.assertEqual(matrix_to_table(matrix).headers, ("SKU", "Name", "Price"))

    def test_no_confident_header_falls_back_to_first_row(self):
        result = normalize_matrix([["a", "b"], ["c", "d"]])
        self.assertTrue(result.decision.is_fallback)
        self.assertFalse(result.helper_filter_applied)
        self.assertEqual(result.table.records(), [{"a": "c", "b": "d"}])
        self.assertTrue(result.table.is_low_confidence)
        self.assertTrue(any("No row looks like a confident header" in w for w in result.warnings))

    def test_explicit_header_row_keeps_duplicate_names(self):
        result = normalize_matrix(SCENARIO_A, header_row_index=0)
        table = result.table
        self.assertTrue(result.decision.explicit)
        self.assertEqual(table.headers, ("Group A", "Column 2", "Group A"))
        # Right-most duplicate wins the shared key.
        self.assertEqual(table.rows[0], {"Group A": "Price", "Column 2": "Name"})
        self.assertEqual(table.rows[1], {"Group A": "9.99", "Column 2": "Widget"})

    def test_explicit_row_outside_matrix_raises(self):
        with self.assertRaises(NoHeadersError):
            normalize_matrix(SCENARIO_A, header_row_index=3)
        with self.assertRaises(NoHeadersError):
            normalize_matrix(SCENARIO_A, header_row_index=-1)

    def test_blank_header_row_raises(self):
        with self.assertRaisesRegex(NoHeadersError, "Row 2 has no column names"):
            normalize_matrix([["SKU", "Name", "Price"], ["", "__EMPTY", ""]], header_row_index=1)

    def test_empty_matrix_raises(self):
        with self.assertRaises(EmptySheetError):
            normalize_matrix([])
        self.assertTrue(issubclass(EmptySheetError, EmptyInputError))

    def test_ragged_rows_read_missing_cells_as_blank(self):
        matrix = [["SKU", "Name", "Price", "Colour"], ["A1", "Widget"], ["A2", "Gadget", "5", "Red", "extra"]]
        table = matrix_to_table(matrix)
        self.assertEqual(table.rows[0], {"SKU": "A1", "Name": "Widget", "Price": "", "Colour": ""})
        self.assertEqual(table.rows[1]["Colour"], "Red")


class RecordsNormalizationTests(unittest.TestCase):
    def test_header_is_rebased_from_first_data_row(self):
        headers, rows = records_from_matrix(
            [["Template v2"], ["SKU", "Brand", "Name", "Price"], ["A1", "Acme", "Widget", "9.99"]]
        )
        result = normalize_records(headers, rows)
        self.assertIsInstance(result.rescan, RescanAccepted)
        self.assertEqual(result.rescan.row_index, 0)
        self.assertEqual(result.table.headers, ("SKU", "Brand", "Name", "Price"))
        self.assertEqual(result.table.records(), [{"SKU": "A1", "Brand": "Acme", "Name": "Widget", "Price": "9.99"}])
        self.assertTrue(result.helper_filter_applied)

    def test_hint_row_under_rebased_header_is_dropped(self):
        headers, rows = records_from_matrix(
            [
                ["Category: phone cases", "", "", ""],
                ["SKU", "Brand", "Name", "Price"],
                ["Unique identifier", "Required field", "Please fill in", "This is a number"],
                ["A1", "Acme", "Widget", "9.99"],
            ]
        )
        result = normalize_records(headers, rows)
        self.assertIsInstance(result.rescan, RescanAccepted)
        self.assertEqual([row["SKU"] for row in result.table.rows], ["A1"])
        self.assertEqual(result.dropped_rows, 1)

    def test_equal_scoring_row_does_not_replace_current_header(self):
        rows = [{"SKU": "Article", "Name": "Name", "Price": "Price"}]
        result = normalize_records(["SKU", "Name", "Price"], rows)
        self.assertIsInstance(result.rescan, RescanRejected)
        self.assertEqual(result.rescan.reason, "current header scores at least as high")
        self.assertEqual(result.table.headers, ("SKU", "Name", "Price"))
        self.assertEqual(len(result.table), 1)

    def test_weak_data_rows_are_not_promoted(self):
        outcome = rescan_header(["SKU", "Name", "Price"], [["A1", "Widget", "9.99"]])
        self.assertEqual(outcome, RescanRejected("no row scored as a header", 0, 3, 21))

    def test_promotion_needs_enough_named_columns(self):
        config = ScoringConfig(min_named_columns=4)
        outcome = rescan_header(["x", "y", "z"], [["SKU", "Name", "Price"], ["A1", "Widget", "9.99"]], config)
        self.assertIsInstance(outcome, RescanRejected)
        self.assertEqual(outcome.reason, "promoted row leaves fewer than 4 named columns")

    def test_no_data_rows(self):
        result = normalize_records(["SKU", "Name", "Price"], [])
        self.assertEqual(result.rescan.reason, "no data rows to scan")
        self.assertEqual(result.table.headers, ("SKU", "Name", "Price"))
        self.assertEqual(len(result.table), 0)

    def test_low_scoring_header_skips_helper_filter(self):
        rows = [{"a": "please fill in", "b": "x"}]
        result = normalize_records(["a", "b"], rows)
        self.assertFalse(result.helper_filter_applied)
        self.assertEqual(len(result.table), 1)
        self.assertTrue(result.table.is_low_confidence)

    def test_normalizing_a_canonical_table_is_stable(self):
        first = matrix_to_table(SCENARIO_A)
        self.assertEqual(normalize_table(first), first)
        self.assertEqual(normalize_table(normalize_table(first)), first)

    def test_placeholder_columns_do_not_change_the_helper_filter_on_a_second_pass(self):
        matrix = [
            ["SKU", "Name", "Price", "__EMPTY", "__EMPTY_1"],
            ["A1", "please fill in later", "1", "", ""],
            ["A2", "Gadget", "2", "", ""],
        ]
        result = normalize_matrix(matrix)
        self.assertTrue(result.decision.is_fallback)
        self.assertTrue(result.helper_filter_applied)
        first = matrix_to_table(matrix)
        self.assertEqual(first.headers, ("SKU", "Name", "Price"))
        self.assertEqual([row["SKU"] for row in first.rows], ["A2"])
        self.assertEqual(normalize_table(first), first)

    def test_normalize_table_accepts_table_instances(self):
        table = Table.from_records(["Only"], [{"Only": "1"}])
        self.assertEqual(normalize_table(table).headers, ("Only",))


if __name__ == "__main__":
    unittest.main()
