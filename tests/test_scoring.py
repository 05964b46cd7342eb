from __future__ import annotations

import unittest

from cardsheet.config import DEFAULT_CONFIG, ScoringConfig
from cardsheet.models import cell_text
from cardsheet.scoring import non_empty_values, score_header_row, value_penalty


class HeaderScoreTests(unittest.TestCase):
    def test_marketplace_header_scores_distinct_values_plus_keyword_bonus(self):
        self.assertEqual(score_header_row(["SKU", "Brand", "Name", "Price"]), 4 + 4 * 6)

    def test_keywords_match_case_insensitively_in_russian_and_english(self):
        self.assertEqual(score_header_row(["АРТИКУЛ", "x", "y"]), 3 + 6)
        self.assertEqual(score_header_row(["Наименование товара", "Colour", "z"]), 3 + 12)

    def test_fewer_than_three_non_empty_cells_is_rejected(self):
        self.assertEqual(score_header_row(["SKU", "", "  ", "Brand"]), DEFAULT_CONFIG.reject_score)
        self.assertEqual(score_header_row([]), -999)

    def test_repeated_group_labels_count_once(self):
        self.assertEqual(score_header_row(["Group", "Group", "Group", "Other"]), 2)

    def test_distinct_count_is_capped(self):
        values = [f"c{i}" for i in range(30)]
        self.assertEqual(score_header_row(values), 24)

    def test_placeholder_names_are_penalised(self):
        self.assertEqual(score_header_row(["__EMPTY", "__EMPTY_1", "Foo"]), 3 - 20)

    def test_long_value_penalty(self):
        self.assertEqual(score_header_row(["x" * 81, "B", "C"]), 3 - 4)
        self.assertEqual(score_header_row(["x" * 80, "B", "C"]), 3)

    def test_wordy_value_penalty(self):
        self.assertEqual(score_header_row(["one two three four five six seven", "B", "C"]), 3 - 2)
        self.assertEqual(score_header_row(["one two three four five six", "B", "C"]), 3)

    def test_sentence_punctuation_penalty(self):
        self.assertEqual(score_header_row(["Fill this in.", "B", "C"]), 3 - 2)
        self.assertEqual(score_header_row(["Really? Yes", "B", "C"]), 3 - 2)

    def test_decimal_numbers_are_not_sentences(self):
        self.assertEqual(value_penalty("9.99"), 0)
        self.assertEqual(value_penalty("v1.2"), 0)

    def test_numeric_cells_are_read_as_text(self):
        self.assertEqual(non_empty_values([None, 3.0, float("nan"), " a "]), ["3", "a"])
        self.assertEqual(cell_text(2.5), "2.5")

    def test_custom_keywords_replace_defaults(self):
        config = ScoringConfig(header_keywords=("foo",))
        self.assertEqual(score_header_row(["foo", "SKU", "c"], config), 3 + 6)

    def test_hint_row_scores_below_header_row(self):
        header = ["Артикул", "Бренд", "Наименование", "Цена"]
        hints = [
            "Заполните уникальный артикул товара",
            "Это число или текст, не более 100 символов.",
            "Выберите значение из списка",
            "Это число, без пробелов",
        ]
        self.assertGreater(score_header_row(header), score_header_row(hints))


if __name__ == "__main__":
    unittest.main()
