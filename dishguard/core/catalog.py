"""
Dietary category catalog.

Categories are immutable rule definitions assembled once from the keyword
tables in ``dishguard.core.rules``. Callers that need a different taxonomy
build their own ``CategoryCatalog`` and pass it to the matrix builder or the
availability aggregator instead of editing the defaults.
"""
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple, Type, Union

from dishguard.core import rules
from dishguard.models import CategoryType


@dataclass(frozen=True)
class AliasRule:
    """Allergen-free rule: any alias in a tag or ingredient name reveals the allergen."""
    aliases: Tuple[str, ...]
    exceptions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StyleRule:
    """Dietary-style rule built from banned keyword families and blocker tags."""
    banned_keywords: Tuple[str, ...]
    blocker_tags: Tuple[str, ...] = ()
    exceptions: Tuple[str, ...] = ()
    carve_out: Tuple[str, ...] = ()
    # Keyword families that are each allowed alone but not together in one dish.
    exclusive_families: Tuple[Tuple[str, ...], ...] = ()

    @property
    def effective_banned(self) -> Tuple[str, ...]:
        return tuple(k for k in self.banned_keywords if k not in self.carve_out)


@dataclass(frozen=True)
class ThresholdRule:
    """Health-focused rule: the dish's nutrient must be strictly below the limit."""
    nutrient: str
    limit: float
    unit: str


CategoryRule = Union[AliasRule, StyleRule, ThresholdRule]

RULE_TYPES: Dict[CategoryType, Type] = {
    CategoryType.ALLERGEN_FREE: AliasRule,
    CategoryType.DIETARY_STYLE: StyleRule,
    CategoryType.HEALTH_FOCUSED: ThresholdRule,
}


@dataclass(frozen=True)
class DietaryCategory:
    id: str
    name: str
    description: str
    type: CategoryType
    rule: CategoryRule

    def __post_init__(self) -> None:
        expected = RULE_TYPES[self.type]
        if not isinstance(self.rule, expected):
            raise TypeError(
                f"Category '{self.id}' of type {self.type.value} needs a {expected.__name__}, "
                f"got {type(self.rule).__name__}"
            )


@dataclass(frozen=True)
class CategoryCatalog:
    version: str
    categories: Tuple[DietaryCategory, ...]

    def __iter__(self) -> Iterator[DietaryCategory]:
        return iter(self.categories)

    def __len__(self) -> int:
        return len(self.categories)

    def get(self, category_id: str) -> Optional[DietaryCategory]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(c.id for c in self.categories)


def _allergen_free(category_id: str, name: str, description: str, alias_key: str) -> DietaryCategory:
    return DietaryCategory(
        id=category_id,
        name=name,
        description=description,
        type=CategoryType.ALLERGEN_FREE,
        rule=AliasRule(
            aliases=rules.ALLERGEN_ALIASES[alias_key],
            exceptions=rules.ALLERGEN_ALIAS_EXCEPTIONS.get(alias_key, ()),
        ),
    )


def build_default_catalog() -> CategoryCatalog:
    """Assemble the fixed 16-entry catalog from the module-level tables."""
    meat_and_seafood = rules.MEAT_KEYWORDS + rules.SEAFOOD_KEYWORDS
    categories = (
        _allergen_free("shellfish-free", "Shellfish-Free", "No shrimp, crab, lobster, or other crustaceans", "shellfish"),
        _allergen_free("nut-free", "Nut-Free", "No tree nuts (almonds, walnuts, cashews, etc.)", "tree_nuts"),
        _allergen_free("peanut-free", "Peanut-Free", "No peanuts or peanut-derived products", "peanuts"),
        _allergen_free("dairy-free", "Dairy-Free", "No milk, cheese, butter, or other dairy products", "milk"),
        _allergen_free("gluten-free", "Gluten-Free", "No wheat, barley, rye, or gluten-containing ingredients", "gluten"),
        _allergen_free("egg-free", "Egg-Free", "No eggs or egg-derived products", "eggs"),
        _allergen_free("soy-free", "Soy-Free", "No soybeans, tofu, soy sauce, or soy products", "soy"),
        _allergen_free("fish-free", "Fish-Free", "No fish or fish-derived products", "fish"),
        _allergen_free("sesame-free", "Sesame-Free", "No sesame seeds, tahini, or sesame oil", "sesame"),
        DietaryCategory(
            id="vegetarian",
            name="Vegetarian",
            description="No meat, poultry, or fish (dairy/eggs allowed)",
            type=CategoryType.DIETARY_STYLE,
            rule=StyleRule(
                banned_keywords=meat_and_seafood + rules.GELATIN_KEYWORDS,
                blocker_tags=rules.ANIMAL_SEAFOOD_TAGS,
                exceptions=rules.PLANT_BASED_EXCEPTIONS,
            ),
        ),
        DietaryCategory(
            id="vegan",
            name="Vegan",
            description="No animal products (meat, dairy, eggs, honey)",
            type=CategoryType.DIETARY_STYLE,
            rule=StyleRule(
                banned_keywords=(
                    meat_and_seafood + rules.DAIRY_KEYWORDS + rules.EGG_KEYWORDS
                    + rules.GELATIN_KEYWORDS + rules.HONEY_KEYWORDS
                ),
                blocker_tags=rules.ANIMAL_PRODUCT_TAGS,
                exceptions=rules.PLANT_BASED_EXCEPTIONS,
            ),
        ),
        DietaryCategory(
            id="pescatarian",
            name="Pescatarian",
            description="No meat or poultry (fish and seafood allowed)",
            type=CategoryType.DIETARY_STYLE,
            rule=StyleRule(
                banned_keywords=meat_and_seafood + rules.GELATIN_KEYWORDS,
                exceptions=rules.PLANT_BASED_EXCEPTIONS + rules.SEAFOOD_MEAT_EXCEPTIONS,
                carve_out=rules.SEAFOOD_KEYWORDS,
            ),
        ),
        DietaryCategory(
            id="kosher",
            name="Kosher",
            description="No pork or shellfish, and no meat served with dairy",
            type=CategoryType.DIETARY_STYLE,
            rule=StyleRule(
                banned_keywords=rules.PORK_KEYWORDS + rules.NON_KOSHER_SEAFOOD_KEYWORDS + rules.GELATIN_KEYWORDS,
                blocker_tags=rules.NON_KOSHER_TAGS,
                exceptions=rules.PORK_EXCEPTIONS + rules.PLANT_BASED_EXCEPTIONS + rules.KOSHER_EXCEPTIONS,
                exclusive_families=(rules.MEAT_KEYWORDS, rules.DAIRY_KEYWORDS),
            ),
        ),
        DietaryCategory(
            id="halal",
            name="Halal",
            description="No pork, alcohol, or gelatin",
            type=CategoryType.DIETARY_STYLE,
            rule=StyleRule(
                banned_keywords=rules.PORK_KEYWORDS + rules.ALCOHOL_KEYWORDS + rules.GELATIN_KEYWORDS,
                exceptions=rules.PORK_EXCEPTIONS + rules.HALAL_EXCEPTIONS,
            ),
        ),
        DietaryCategory(
            id="low-carb",
            name="Low-Carb",
            description="Less than 20g net carbs per serving",
            type=CategoryType.HEALTH_FOCUSED,
            rule=ThresholdRule(nutrient="carbs_g", limit=rules.LOW_CARB_MAX_CARBS_G, unit="g"),
        ),
        DietaryCategory(
            id="low-sodium",
            name="Low-Sodium",
            description="Less than 600mg sodium per serving",
            type=CategoryType.HEALTH_FOCUSED,
            rule=ThresholdRule(nutrient="sodium_mg", limit=rules.LOW_SODIUM_MAX_SODIUM_MG, unit="mg"),
        ),
    )
    return CategoryCatalog(version=rules.TAXONOMY_VERSION, categories=categories)


DEFAULT_CATALOG = build_default_catalog()
