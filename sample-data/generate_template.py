#!/usr/bin/env python3
"""
Generates marketplace-style product templates for trying out cardsheet.

Run from the repo root:
    python sample-data/generate_template.py

Outputs:
  sample-data/marketplace_template.xlsx
    Sheet "Товары"
      - Row 1: category banner (one merged-looking cell)
      - Row 2: field groups ("Основная информация" repeated across columns)
      - Row 3: the real header row
      - Row 4: field hints ("Заполните ...", "Это число ...")
      - Rows 5+: products, with one blank row and one long description
    Sheet "Инструкция"
      - Free text only, no table
  sample-data/marketplace_template.csv
    The same product sheet as semicolon-separated cp1251 text
"""

from __future__ import annotations

import csv
from pathlib import Path

import openpyxl

OUT_DIR = Path(__file__).parent

HEADER = ["Артикул", "Бренд", "Наименование", "Цена", "Цвет", "Описание", "Фото"]

PREAMBLE = [
    ["Категория: Смартфоны и аксессуары > Чехлы"],
    ["Основная информация", "Основная информация", "Основная информация", "Цена", "Характеристики", "Характеристики", "Медиа"],
]

HINTS = [
    "Заполните уникальный артикул товара",
    "Бренд производителя",
    "Это число или текст, не более 100 символов",
    "Это число, без пробелов",
    "Выберите значение из списка",
    "Подробное описание товара",
    "Ссылка на изображение",
]

PRODUCTS = [
    ["CASE-001", "Moskit", "Чехол для iPhone 15", "990", "Черный", "Силиконовый чехол", "https://img.example/1.jpg"],
    ["CASE-002", "Moskit", "Чехол для iPhone 15 Pro", "1090", "Синий", "Силиконовый чехол с MagSafe", "https://img.example/2.jpg"],
    [],
    ["CASE-003", "Armor", "Чехол для Galaxy S24", "1290", "Прозрачный", "Противоударный. " * 30, "https://img.example/3.jpg"],
]


def template_rows() -> list[list[str]]:
    return PREAMBLE + [HEADER, HINTS] + PRODUCTS


def build_template_workbook(path: Path) -> Path:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Товары"
    for row in template_rows():
        ws.append(row)
    ws.merge_cells("A1:G1")

    notes = wb.create_sheet("Инструкция")
    notes.append(["Загрузите файл в личном кабинете продавца."])
    notes.append(["Не меняйте порядок столбцов."])

    wb.save(path)
    return path


def build_template_csv(path: Path, encoding: str = "cp1251") -> Path:
    with path.open("w", encoding=encoding, newline="") as handle:
        writer = csv.writer(handle, delimiter=";")
        for row in template_rows():
            writer.writerow(row)
    return path


if __name__ == "__main__":
    xlsx_path = build_template_workbook(OUT_DIR / "marketplace_template.xlsx")
    csv_path = build_template_csv(OUT_DIR / "marketplace_template.csv")
    print(f"Created: {xlsx_path}")
    print(f"Created: {csv_path}")
