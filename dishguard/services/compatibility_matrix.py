"""
Deterministic dish × dietary-category compatibility matrix.

Every (dish, category) cell is one of compatible / can_modify / not_compatible.
Evaluation is profile-independent and never calls out to an external service,
so the matrix can be exported as a report for the whole menu.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from dishguard.core.catalog import (
    DEFAULT_CATALOG,
    AliasRule,
    CategoryCatalog,
    DietaryCategory,
    StyleRule,
    ThresholdRule,
)
from dishguard.core.logging_config import get_logger
from dishguard.models import (
    CategoryInfo,
    CategorySummary,
    CategoryType,
    CompatibilityMatrix,
    CompatibilityStatus,
    Dish,
    IngredientLink,
    MatrixCell,
    MatrixRow,
)
from dishguard.services.allergen_matcher import mentions_keyword
from dishguard.services.cross_contact import describe_risk, is_modifiable_risk

logger = get_logger(__name__)

TextCheck = Callable[[Optional[str]], bool]


@dataclass
class CategoryVerdict:
    status: CompatibilityStatus
    notes: List[str] = field(default_factory=list)


class _Tally:
    def __init__(self) -> None:
        self.forced: List[str] = []
        self.modifiable: List[str] = []

    def force(self, note: str) -> None:
        if note not in self.forced:
            self.forced.append(note)

    def modify(self, note: str) -> None:
        if note not in self.modifiable:
            self.modifiable.append(note)

    def verdict(self) -> CategoryVerdict:
        if self.forced:
            return CategoryVerdict(CompatibilityStatus.NOT_COMPATIBLE, self.forced + self.modifiable)
        if self.modifiable:
            return CategoryVerdict(CompatibilityStatus.CAN_MODIFY, list(self.modifiable))
        return CategoryVerdict(CompatibilityStatus.COMPATIBLE)


def _keyword_check(keywords, exceptions=()) -> TextCheck:
    return lambda text: mentions_keyword(text, keywords, exceptions) is not None


def _check_description_tags(dish: Dish, hit: TextCheck, tally: _Tally) -> None:
    for tag in dish.description_allergens:
        if hit(tag):
            tally.force(f"Described as containing {tag}")


def _check_cooking_steps(dish: Dish, hit: TextCheck, tally: _Tally) -> None:
    for step in dish.cooking_steps:
        if step.cross_contact_risk is None:
            tally.force(f"Cross-contact risks unknown for step {step.step_number}")
            continue
        for tag in step.cross_contact_risk:
            if not hit(tag):
                continue
            if is_modifiable_risk(step, tag):
                notes = (step.modification_notes or "").strip()
                tally.modify(notes or f"Step {step.step_number}: adjust preparation to avoid {tag}")
            else:
                tally.force(f"Cross-contact risk: {describe_risk(step, tag)}")


def _link_matches(link: IngredientLink, hit: TextCheck) -> bool:
    ingredient = link.ingredient
    return hit(ingredient.name) or any(hit(tag) for tag in ingredient.allergens or [])


def _resolve_link(link: IngredientLink, hit: TextCheck, tally: _Tally) -> None:
    """Removable or safely substitutable occurrences can be modified; anything else is forced."""
    name = link.ingredient.name
    if link.is_removable:
        tally.modify(f"Remove {name}")
        return
    if link.is_substitutable:
        safe = [
            s.name for s in link.substitutes
            if s.allergens is not None and not hit(s.name) and not any(hit(t) for t in s.allergens)
        ]
        if safe:
            tally.modify(f"Substitute {name} with {' or '.join(safe)}")
        else:
            tally.force(f"{name} cannot be safely substituted")
        return
    tally.force(f"Contains {name} (non-removable)")


def _check_ingredients(dish: Dish, hit: TextCheck, tally: _Tally) -> None:
    for link in dish.ingredients:
        if link.ingredient is None:
            tally.force(f"Ingredient data unavailable for {link.display_name}")
            continue
        if link.ingredient.allergens is None:
            tally.force(f"Allergen information unknown for {link.ingredient.name}")
            continue
        if _link_matches(link, hit):
            _resolve_link(link, hit, tally)


def _check_dropped_rows(dish: Dish, tally: _Tally) -> None:
    if dish.dropped_rows:
        tally.force(f"{dish.dropped_rows} ingredient or preparation record(s) could not be read")


def _evaluate_allergen_free(dish: Dish, rule: AliasRule) -> CategoryVerdict:
    tally = _Tally()
    hit = _keyword_check(rule.aliases, rule.exceptions)
    _check_description_tags(dish, hit, tally)
    _check_cooking_steps(dish, hit, tally)
    _check_ingredients(dish, hit, tally)
    _check_dropped_rows(dish, tally)
    return tally.verdict()


def _check_exclusive_families(dish: Dish, rule: StyleRule, tally: _Tally) -> None:
    """Families that may each appear alone but not together (e.g. meat with dairy)."""
    if not rule.exclusive_families:
        return
    occurrences: List[List[IngredientLink]] = []
    for family in rule.exclusive_families:
        family_hit = _keyword_check(family, rule.exceptions)
        occurrences.append([
            link for link in dish.ingredients
            if link.ingredient is not None and _link_matches(link, family_hit)
        ])
    if not all(occurrences):
        return

    combined = " with ".join(links[0].ingredient.name for links in occurrences)
    for family, links in zip(rule.exclusive_families, occurrences):
        family_hit = _keyword_check(family, rule.exceptions)
        side = _Tally()
        for link in links:
            _resolve_link(link, family_hit, side)
        if not side.forced:
            tally.modify(f"Serve without {', '.join(link.ingredient.name for link in links)} to avoid combining {combined}")
            return
    tally.force(f"Combines {combined}")


def _evaluate_dietary_style(dish: Dish, rule: StyleRule) -> CategoryVerdict:
    tally = _Tally()
    keyword_hit = _keyword_check(rule.effective_banned, rule.exceptions)
    tag_hit = _keyword_check(rule.blocker_tags)

    def hit(text: Optional[str]) -> bool:
        return keyword_hit(text) or tag_hit(text)

    _check_description_tags(dish, tag_hit, tally)
    _check_cooking_steps(dish, tag_hit, tally)
    _check_ingredients(dish, hit, tally)
    _check_exclusive_families(dish, rule, tally)
    _check_dropped_rows(dish, tally)
    return tally.verdict()


def _evaluate_health_focused(dish: Dish, rule: ThresholdRule) -> CategoryVerdict:
    value = getattr(dish, rule.nutrient, None)
    if value is None:
        return CategoryVerdict(CompatibilityStatus.NOT_COMPATIBLE, [f"No {rule.nutrient} data"])
    if value < rule.limit:
        return CategoryVerdict(CompatibilityStatus.COMPATIBLE)
    return CategoryVerdict(
        CompatibilityStatus.NOT_COMPATIBLE,
        [f"{value:g}{rule.unit} is not below {rule.limit:g}{rule.unit}"]
    )


_EVALUATORS: Dict[CategoryType, Callable[[Dish, object], CategoryVerdict]] = {
    CategoryType.ALLERGEN_FREE: _evaluate_allergen_free,
    CategoryType.DIETARY_STYLE: _evaluate_dietary_style,
    CategoryType.HEALTH_FOCUSED: _evaluate_health_focused,
}

_missing = set(CategoryType) - set(_EVALUATORS)
if _missing:
    raise RuntimeError(f"No compatibility evaluator for category types: {sorted(t.value for t in _missing)}")


def evaluate_dish(dish: Dish, category: DietaryCategory) -> CategoryVerdict:
    """Evaluate one dish against one dietary category."""
    return _EVALUATORS[category.type](dish, category.rule)


def build_compatibility_matrix(
    dishes: Iterable[Dish],
    catalog: CategoryCatalog = DEFAULT_CATALOG
) -> CompatibilityMatrix:
    """Build the dish × category matrix for all active dishes.

    Args:
        dishes: Dish snapshots; inactive dishes are skipped.
        catalog: Category catalog to evaluate against.

    Returns:
        CompatibilityMatrix with rows ordered by category then name.
    """
    active = sorted(
        (d for d in dishes if d.is_active),
        key=lambda d: (d.category or "", d.name or "")
    )
    summary = {category.id: CategorySummary() for category in catalog}
    rows: List[MatrixRow] = []

    for dish in active:
        cells: Dict[str, MatrixCell] = {}
        for category in catalog:
            verdict = evaluate_dish(dish, category)
            cells[category.id] = MatrixCell(status=verdict.status, notes=verdict.notes)
            counts = summary[category.id]
            setattr(counts, verdict.status.value, getattr(counts, verdict.status.value) + 1)
        rows.append(MatrixRow(dish_id=dish.id, dish_name=dish.name, category=dish.category, cells=cells))

    logger.info(f"Built compatibility matrix: {len(rows)} dishes x {len(catalog)} categories")
    return CompatibilityMatrix(
        catalog_version=catalog.version,
        categories=[
            CategoryInfo(id=c.id, name=c.name, description=c.description, type=c.type)
            for c in catalog
        ],
        rows=rows,
        summary=summary,
    )
