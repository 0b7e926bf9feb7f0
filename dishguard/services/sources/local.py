import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union
from dishguard.services.sources.base import MenuSource
from dishguard.models import CookingStep, Dish, Ingredient, IngredientLink, Substitute
from dishguard.core.rules import ALLERGEN_TAXONOMY
from dishguard.core.settings import menu_snapshot_path
from dishguard.core.logging_config import get_logger

logger = get_logger(__name__)

_KNOWN_TAGS = {tag.lower() for tag in ALLERGEN_TAXONOMY}


class LocalMenuSource(MenuSource):
    """
    Reads a relational menu snapshot from a JSON file and resolves it into Dish graphs.

    The file holds one list per table: menu_items, ingredients,
    menu_item_ingredients, ingredient_substitutes and cooking_steps.
    Anything malformed fails closed: flags only count when they are a real
    boolean true, unreadable tag lists become None (unknown), and rows that
    cannot be attached are counted on their dish as dropped.
    """
    name = "Local"

    def __init__(self, file_path: Optional[Union[str, Path]] = None):
        self.file_path = Path(file_path) if file_path else menu_snapshot_path()
        self._warned_tags: Set[str] = set()

    def get_dishes(self) -> List[Dish]:
        tables = self._load_tables()
        ingredients = self._index_ingredients(tables)

        dishes: Dict[str, Dish] = {}
        for row in self._rows(tables, "menu_items"):
            dish = self._adapt_dish(row)
            if dish is None:
                continue
            if dish.id in dishes:
                logger.warning(f"Duplicate menu item id '{dish.id}' in {self.file_path}; keeping the first")
                continue
            dishes[dish.id] = dish

        substitutes = self._group_substitutes(tables, dishes)
        for row in self._rows(tables, "menu_item_ingredients"):
            dish = self._owner(row, dishes, "menu_item_ingredients")
            if dish is None:
                continue
            ingredient_id = self._text(row.get("ingredient_id"))
            if not ingredient_id:
                logger.warning(f"Ingredient link without ingredient_id on dish '{dish.id}'; dropping")
                dish.dropped_rows += 1
                continue
            ingredient = ingredients.get(ingredient_id)
            if ingredient is None:
                logger.warning(f"Dish '{dish.id}' links to missing ingredient '{ingredient_id}'")
            dish.ingredients.append(IngredientLink(
                ingredient_id=ingredient_id,
                ingredient=ingredient,
                is_removable=row.get("is_removable") is True,
                is_substitutable=row.get("is_substitutable") is True,
                substitutes=substitutes.get((dish.id, ingredient_id), [])
            ))

        for row in self._rows(tables, "cooking_steps"):
            dish = self._owner(row, dishes, "cooking_steps")
            if dish is None:
                continue
            step = self._adapt_step(row, dish.id)
            if step is None:
                dish.dropped_rows += 1
                continue
            dish.cooking_steps.append(step)

        for dish in dishes.values():
            dish.cooking_steps.sort(key=lambda s: s.step_number)

        logger.info(f"Loaded {len(dishes)} dishes from {self.file_path}")
        return list(dishes.values())

    # --- Table handling ---

    def _load_tables(self) -> Dict[str, Any]:
        # Missing or unreadable snapshots propagate so the menu service can report them.
        with open(self.file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.file_path} must contain a JSON object of tables")
        return data

    def _rows(self, tables: Dict[str, Any], table: str) -> List[Dict[str, Any]]:
        rows = tables.get(table) or []
        if not isinstance(rows, list):
            logger.warning(f"Table '{table}' in {self.file_path} is not a list; ignoring it")
            return []
        valid = [r for r in rows if isinstance(r, dict)]
        if len(valid) != len(rows):
            logger.warning(f"Skipped {len(rows) - len(valid)} non-object rows in table '{table}'")
        return valid

    def _owner(self, row: Dict[str, Any], dishes: Dict[str, Dish], table: str) -> Optional[Dish]:
        dish_id = self._text(row.get("menu_item_id"))
        dish = dishes.get(dish_id) if dish_id else None
        if dish is None:
            logger.warning(f"Row in '{table}' references unknown menu item '{dish_id}'; dropping")
        return dish

    def _index_ingredients(self, tables: Dict[str, Any]) -> Dict[str, Ingredient]:
        index: Dict[str, Ingredient] = {}
        for row in self._rows(tables, "ingredients"):
            ingredient_id = self._text(row.get("id"))
            name = self._text(row.get("name"))
            if not ingredient_id or not name:
                logger.warning(f"Ingredient row without id or name: {row}; dropping")
                continue
            index[ingredient_id] = Ingredient(
                id=ingredient_id,
                name=name,
                allergens=self._tags(row, "allergens")
            )
        return index

    def _group_substitutes(self, tables: Dict[str, Any], dishes: Dict[str, Dish]) -> Dict[tuple, List[Substitute]]:
        grouped: Dict[tuple, List[tuple]] = {}
        for order, row in enumerate(self._rows(tables, "ingredient_substitutes")):
            dish = self._owner(row, dishes, "ingredient_substitutes")
            if dish is None:
                continue
            ingredient_id = self._text(row.get("ingredient_id"))
            name = self._text(row.get("name"))
            if not ingredient_id or not name:
                logger.warning(f"Substitute row without ingredient_id or name on dish '{dish.id}'; dropping")
                dish.dropped_rows += 1
                continue
            position = row.get("position")
            if not isinstance(position, int) or isinstance(position, bool):
                position = order
            substitute = Substitute(name=name, allergens=self._tags(row, "allergens"))
            grouped.setdefault((dish.id, ingredient_id), []).append((position, order, substitute))

        return {
            key: [s for _, _, s in sorted(entries, key=lambda e: (e[0], e[1]))]
            for key, entries in grouped.items()
        }

    # --- Row adapters ---

    def _adapt_dish(self, row: Dict[str, Any]) -> Optional[Dish]:
        dish_id = self._text(row.get("id"))
        name = self._text(row.get("name"))
        if not dish_id or not name:
            logger.warning(f"Menu item without id or name: {row}; dropping")
            return None

        dropped = 0
        description_allergens = self._tags(row, "description_allergens")
        if description_allergens is None:
            # An unreadable description tag list leaves the dish unverifiable.
            description_allergens = []
            dropped += 1

        is_active = row.get("is_active", True)
        return Dish(
            id=dish_id,
            name=name,
            category=self._text(row.get("category")) or "Other",
            description=self._text(row.get("description")),
            description_allergens=description_allergens,
            price=self._number(row.get("price")),
            calories=self._number(row.get("calories")),
            protein_g=self._number(row.get("protein_g")),
            carbs_g=self._number(row.get("carbs_g")),
            fat_g=self._number(row.get("fat_g")),
            sodium_mg=self._number(row.get("sodium_mg")),
            modification_policy=self._text(row.get("modification_policy")),
            is_active=is_active if isinstance(is_active, bool) else True,
            dropped_rows=dropped
        )

    def _adapt_step(self, row: Dict[str, Any], dish_id: str) -> Optional[CookingStep]:
        step_number = row.get("step_number")
        if not isinstance(step_number, int) or isinstance(step_number, bool):
            logger.warning(f"Cooking step without a numeric step_number on dish '{dish_id}'; dropping")
            return None
        modifiable_allergens = self._tags(row, "modifiable_allergens")
        is_modifiable = row.get("is_modifiable") is True
        if modifiable_allergens is None:
            # An unreadable subset must not widen to "every tag is modifiable".
            modifiable_allergens = []
            is_modifiable = False
        return CookingStep(
            step_number=step_number,
            description=self._text(row.get("description")) or "",
            cross_contact_risk=self._tags(row, "cross_contact_risk"),
            is_modifiable=is_modifiable,
            modifiable_allergens=modifiable_allergens,
            modification_notes=self._text(row.get("modification_notes"))
        )

    # --- Field coercion ---

    def _tags(self, row: Dict[str, Any], key: str) -> Optional[List[str]]:
        """An absent key means no tags; anything other than a list of strings is unknown (None)."""
        if key not in row:
            return []
        value = row[key]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            logger.warning(f"Unreadable '{key}' value {value!r}; treating as unknown")
            return None
        tags = [v.strip() for v in value if v.strip()]
        for tag in tags:
            lowered = tag.lower()
            if lowered not in _KNOWN_TAGS and lowered not in self._warned_tags:
                self._warned_tags.add(lowered)
                logger.warning(f"Allergen tag '{tag}' is outside the allergen taxonomy")
        return tags

    def _text(self, value: Any) -> Optional[str]:
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return value.strip() or None
        return None

    def _number(self, value: Any) -> Optional[float]:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None
