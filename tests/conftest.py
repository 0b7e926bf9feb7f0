import json
import pytest
from dishguard.models import CookingStep, Dish, Ingredient, IngredientLink, Substitute
from dishguard.services.safety_classifier import DishSafetyClassifier


def _make_link(name, allergens=(), removable=False, substitutable=False, substitutes=(), ingredient_id=None):
    """Build a resolved dish↔ingredient link. allergens=None means unknown tags."""
    ingredient_id = ingredient_id or f"ing-{name.lower().replace(' ', '-')}"
    return IngredientLink(
        ingredient_id=ingredient_id,
        ingredient=Ingredient(
            id=ingredient_id,
            name=name,
            allergens=list(allergens) if allergens is not None else None
        ),
        is_removable=removable,
        is_substitutable=substitutable,
        substitutes=[
            Substitute(name=s, allergens=list(tags) if tags is not None else None)
            for s, tags in substitutes
        ]
    )


def _make_step(number=1, risks=(), modifiable=False, modifiable_allergens=(), notes=None, description="Cook"):
    return CookingStep(
        step_number=number,
        description=description,
        cross_contact_risk=list(risks) if risks is not None else None,
        is_modifiable=modifiable,
        modifiable_allergens=list(modifiable_allergens),
        modification_notes=notes
    )


def _make_dish(dish_id="dish-1", name="Test Dish", ingredients=(), steps=(), **fields):
    return Dish(
        id=dish_id,
        name=name,
        ingredients=list(ingredients),
        cooking_steps=list(steps),
        **fields
    )


@pytest.fixture
def make_link():
    return _make_link


@pytest.fixture
def make_step():
    return _make_step


@pytest.fixture
def make_dish():
    return _make_dish


@pytest.fixture
def classifier():
    """Fixture for DishSafetyClassifier instance."""
    return DishSafetyClassifier()


@pytest.fixture
def write_snapshot(tmp_path):
    """Write a relational menu snapshot to a temp file and return its path."""
    def _write(**tables):
        path = tmp_path / "menu.json"
        path.write_text(json.dumps(tables), encoding="utf-8")
        return path
    return _write
