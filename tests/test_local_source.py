import logging
import pytest
from dishguard.core.settings import PROJECT_ROOT
from dishguard.services.sources.local import LocalMenuSource

SAMPLE_MENU = PROJECT_ROOT / "data" / "sample_menu.json"


def menu_item(dish_id="dish-1", name="Test Dish", **fields):
    row = {"id": dish_id, "name": name, "category": "Mains"}
    row.update(fields)
    return row


def test_sample_menu_resolves_into_dish_graphs():
    dishes = LocalMenuSource(SAMPLE_MENU).get_dishes()
    by_id = {d.id: d for d in dishes}

    assert len(dishes) == 10
    assert not by_id["dish-seasonal-tart"].is_active

    burger = by_id["dish-cheeseburger"]
    assert [link.display_name for link in burger.ingredients] == ["Beef patty", "Cheddar cheese", "Brioche bun"]
    bun = burger.ingredients[2]
    assert bun.is_substitutable
    assert [s.name for s in bun.substitutes] == ["Gluten-free bun", "Lettuce wrap"]
    assert [s.step_number for s in burger.cooking_steps] == [1, 2]
    assert burger.price == 17.0
    assert all(d.dropped_rows == 0 for d in dishes)


def test_flags_only_count_when_strictly_true(write_snapshot):
    path = write_snapshot(
        menu_items=[menu_item()],
        ingredients=[{"id": "ing-1", "name": "Cheese", "allergens": ["Milk"]}],
        menu_item_ingredients=[
            {"menu_item_id": "dish-1", "ingredient_id": "ing-1", "is_removable": "yes", "is_substitutable": 1},
        ],
        cooking_steps=[
            {"menu_item_id": "dish-1", "step_number": 1, "description": "Grill",
             "cross_contact_risk": ["Milk"], "is_modifiable": "true"},
        ],
    )
    dish = LocalMenuSource(path).get_dishes()[0]

    assert not dish.ingredients[0].is_removable
    assert not dish.ingredients[0].is_substitutable
    assert not dish.cooking_steps[0].is_modifiable


def test_unreadable_tag_lists_become_unknown(write_snapshot):
    path = write_snapshot(
        menu_items=[menu_item()],
        ingredients=[
            {"id": "ing-1", "name": "House sauce", "allergens": "Milk"},
            {"id": "ing-2", "name": "Rice"},
        ],
        menu_item_ingredients=[
            {"menu_item_id": "dish-1", "ingredient_id": "ing-1"},
            {"menu_item_id": "dish-1", "ingredient_id": "ing-2"},
        ],
        cooking_steps=[
            {"menu_item_id": "dish-1", "step_number": 1, "cross_contact_risk": None},
        ],
    )
    dish = LocalMenuSource(path).get_dishes()[0]

    assert dish.ingredients[0].ingredient.allergens is None
    assert dish.ingredients[1].ingredient.allergens == []
    assert dish.cooking_steps[0].cross_contact_risk is None


def test_dangling_links_and_dropped_rows(write_snapshot):
    path = write_snapshot(
        menu_items=[menu_item(), {"name": "No id"}, menu_item("dish-2", description_allergens="Fish")],
        ingredients=[{"id": "ing-1", "name": "Rice", "allergens": []}, {"id": "ing-2"}],
        menu_item_ingredients=[
            {"menu_item_id": "dish-1", "ingredient_id": "ing-2"},
            {"menu_item_id": "dish-1"},
            {"menu_item_id": "dish-ghost", "ingredient_id": "ing-1"},
        ],
        ingredient_substitutes=[
            {"menu_item_id": "dish-1", "ingredient_id": "ing-2", "allergens": []},
        ],
        cooking_steps=[
            {"menu_item_id": "dish-1", "step_number": "two", "description": "Stir"},
        ],
    )
    dishes = LocalMenuSource(path).get_dishes()
    by_id = {d.id: d for d in dishes}

    assert set(by_id) == {"dish-1", "dish-2"}
    dish = by_id["dish-1"]
    assert len(dish.ingredients) == 1
    assert dish.ingredients[0].ingredient is None
    assert dish.ingredients[0].display_name == "Unknown ingredient (ing-2)"
    # missing ingredient_id, nameless substitute and non-numeric step
    assert dish.dropped_rows == 3
    assert by_id["dish-2"].dropped_rows == 1


def test_substitutes_follow_position(write_snapshot):
    path = write_snapshot(
        menu_items=[menu_item()],
        ingredients=[{"id": "ing-1", "name": "Bun", "allergens": ["Wheat"]}],
        menu_item_ingredients=[
            {"menu_item_id": "dish-1", "ingredient_id": "ing-1", "is_substitutable": True},
        ],
        ingredient_substitutes=[
            {"menu_item_id": "dish-1", "ingredient_id": "ing-1", "name": "Lettuce wrap", "allergens": [], "position": 2},
            {"menu_item_id": "dish-1", "ingredient_id": "ing-1", "name": "Gluten-free bun", "allergens": ["Eggs"], "position": 1},
        ],
    )
    link = LocalMenuSource(path).get_dishes()[0].ingredients[0]
    assert [s.name for s in link.substitutes] == ["Gluten-free bun", "Lettuce wrap"]


def test_nutrition_and_defaults_are_coerced(write_snapshot):
    path = write_snapshot(menu_items=[
        {"id": 7, "name": "Soup", "carbs_g": "12.5", "sodium_mg": "lots", "calories": True, "is_active": "no"},
    ])
    dish = LocalMenuSource(path).get_dishes()[0]

    assert dish.id == "7"
    assert dish.category == "Other"
    assert dish.carbs_g == 12.5
    assert dish.sodium_mg is None
    assert dish.calories is None
    assert dish.is_active


def test_tags_outside_taxonomy_are_kept_and_logged(write_snapshot, caplog):
    path = write_snapshot(
        menu_items=[menu_item()],
        ingredients=[{"id": "ing-1", "name": "Kiwi", "allergens": ["Kiwi"]}],
        menu_item_ingredients=[{"menu_item_id": "dish-1", "ingredient_id": "ing-1"}],
    )
    with caplog.at_level(logging.WARNING):
        dish = LocalMenuSource(path).get_dishes()[0]

    assert dish.ingredients[0].ingredient.allergens == ["Kiwi"]
    assert "outside the allergen taxonomy" in caplog.text


def test_missing_snapshot_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        LocalMenuSource(tmp_path / "missing.json").get_dishes()


def test_snapshot_path_can_be_overridden(monkeypatch, tmp_path):
    monkeypatch.setenv("MENU_SNAPSHOT_PATH", str(tmp_path / "menu.json"))
    assert LocalMenuSource().file_path == tmp_path / "menu.json"
