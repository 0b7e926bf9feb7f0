"""
CSV exports for restaurant operators.

Both reports start with a UTF-8 byte order mark so spreadsheet tools pick the
right encoding, quote every value, and group dishes under a category header
row followed by a blank separator row.
"""
import csv
import io
from itertools import groupby
from typing import Iterable, List, Optional

from dishguard.models import CompatibilityMatrix, CompatibilityStatus, Dish

BOM = "\ufeff"

ALLERGEN_REPORT_HEADERS = [
    "Category",
    "Dish Name",
    "Description",
    "Price",
    "Allergens",
    "Cross-Contact Risks",
    "Removable Ingredients",
    "Substitutable Ingredients",
    "Calories",
    "Protein (g)",
]

MATRIX_LABELS = {
    CompatibilityStatus.COMPATIBLE: "Compatible",
    CompatibilityStatus.CAN_MODIFY: "Can modify",
    CompatibilityStatus.NOT_COMPATIBLE: "Not compatible",
}


def _write_rows(header: List[str], rows: Iterable[List[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return BOM + buffer.getvalue()


def _grouped(rows: Iterable[List[str]], width: int):
    """Yield category header, item rows (first column blank) and a separator per category."""
    for category, items in groupby(rows, key=lambda r: r[0]):
        yield [category] + [""] * (width - 1)
        for item in items:
            yield [""] + item[1:]
        yield [""] * width


def _number(value: Optional[float]) -> str:
    if value is None:
        return ""
    return f"{value:g}"


def _unique(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _allergen_row(dish: Dish) -> List[str]:
    allergens: List[str] = []
    removable: List[str] = []
    substitutable: List[str] = []

    for link in dish.ingredients:
        ingredient = link.ingredient
        if ingredient is None:
            continue
        tags = ingredient.allergens or []
        allergens.extend(tags)
        if link.is_removable:
            removable.append(f"{ingredient.name} ({', '.join(tags)})" if tags else ingredient.name)
        if link.is_substitutable:
            subs = ", ".join(s.name for s in link.substitutes)
            substitutable.append(f"{ingredient.name} -> {subs}" if subs else ingredient.name)
    allergens.extend(dish.description_allergens)

    risks = [tag for step in dish.cooking_steps for tag in step.cross_contact_risk or []]

    return [
        dish.category or "Other",
        dish.name,
        dish.description or "",
        f"${dish.price:.2f}" if dish.price is not None else "",
        ", ".join(_unique(allergens)),
        ", ".join(_unique(risks)),
        "; ".join(removable),
        "; ".join(substitutable),
        _number(dish.calories),
        _number(dish.protein_g),
    ]


def allergen_report_csv(dishes: Iterable[Dish]) -> str:
    """Per-dish allergen report of active dishes, grouped by menu category."""
    active = sorted(
        (d for d in dishes if d.is_active),
        key=lambda d: (d.category or "Other", d.name)
    )
    width = len(ALLERGEN_REPORT_HEADERS)
    return _write_rows(ALLERGEN_REPORT_HEADERS, _grouped((_allergen_row(d) for d in active), width))


def matrix_to_csv(matrix: CompatibilityMatrix) -> str:
    """Dish × dietary category grid; cells carry the status label and any notes."""
    header = ["Category", "Dish Name"] + [c.name for c in matrix.categories]

    def cell_text(row, category_id: str) -> str:
        cell = row.cells.get(category_id)
        if cell is None:
            return ""
        label = MATRIX_LABELS[cell.status]
        if cell.notes:
            return f"{label}: {'; '.join(cell.notes)}"
        return label

    rows = (
        [row.category, row.dish_name] + [cell_text(row, c.id) for c in matrix.categories]
        for row in matrix.rows
    )
    return _write_rows(header, _grouped(rows, len(header)))
