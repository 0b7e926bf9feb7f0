import csv
import io
from dishguard.services.compatibility_matrix import build_compatibility_matrix
from dishguard.services.report_export import (
    ALLERGEN_REPORT_HEADERS,
    BOM,
    allergen_report_csv,
    matrix_to_csv,
)


def parse(content):
    assert content.startswith(BOM)
    return list(csv.reader(io.StringIO(content[len(BOM):])))


def test_allergen_report_layout(make_dish, make_link, make_step):
    dishes = [
        make_dish("burger", "Cheeseburger", category="Mains", price=17, calories=890, protein_g=45,
                  description='The "house" burger',
                  ingredients=[
                      make_link("Cheddar cheese", ["Milk"], removable=True),
                      make_link("Brioche bun", ["Wheat", "Milk"], substitutable=True,
                                substitutes=[("Gluten-free bun", ["Eggs"]), ("Lettuce wrap", [])]),
                  ],
                  steps=[make_step(1, ["Wheat"]), make_step(2, ["Wheat", "Sesame"])]),
        make_dish("sorbet", "Mango Sorbet", category="Desserts", description_allergens=["Sulfites"]),
        make_dish("tart", "Fruit Tart", category="Desserts", is_active=False),
    ]

    rows = parse(allergen_report_csv(dishes))

    assert rows[0] == ALLERGEN_REPORT_HEADERS
    assert rows[1] == ["Desserts"] + [""] * 9
    assert rows[2] == ["", "Mango Sorbet", "", "", "Sulfites", "", "", "", "", ""]
    assert rows[3] == [""] * 10
    assert rows[4] == ["Mains"] + [""] * 9
    assert rows[5] == [
        "",
        "Cheeseburger",
        'The "house" burger',
        "$17.00",
        "Milk, Wheat",
        "Wheat, Sesame",
        "Cheddar cheese (Milk)",
        "Brioche bun -> Gluten-free bun, Lettuce wrap",
        "890",
        "45",
    ]
    assert rows[6] == [""] * 10
    assert len(rows) == 7


def test_every_value_is_quoted(make_dish):
    content = allergen_report_csv([make_dish(description='Say "cheese"')])
    lines = content[len(BOM):].splitlines()
    assert lines[0].startswith('"Category","Dish Name"')
    assert '"Say ""cheese"""' in lines[2]


def test_matrix_csv(make_dish, make_link):
    dishes = [make_dish("burger", "Cheeseburger", category="Mains", carbs_g=48,
                        ingredients=[make_link("Cheddar cheese", ["Milk"], removable=True)])]
    matrix = build_compatibility_matrix(dishes)

    rows = parse(matrix_to_csv(matrix))

    header = rows[0]
    assert header[:2] == ["Category", "Dish Name"]
    assert len(header) == 2 + len(matrix.categories)
    assert rows[1][0] == "Mains"
    cells = dict(zip(header, rows[2]))
    assert cells["Dish Name"] == "Cheeseburger"
    assert cells["Dairy-Free"] == "Can modify: Remove Cheddar cheese"
    assert cells["Nut-Free"] == "Compatible"
    assert cells["Low-Carb"] == "Not compatible: 48g is not below 20g"
    assert rows[3] == [""] * len(header)
