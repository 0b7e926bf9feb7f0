import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dishguard.core.catalog import DEFAULT_CATALOG, CategoryCatalog, DietaryCategory
from dishguard.core.logging_config import get_logger
from dishguard.core.rules import AVAILABLE_MIN, LIMITED_MIN
from dishguard.models import (
    AnalysisState,
    AvailabilityStatus,
    AvailableDish,
    CategoryAvailability,
    CategoryType,
    DietaryAvailabilityReport,
    DietaryAvailabilityResult,
    Dish,
)
from dishguard.services.ai_service import classification_service

logger = get_logger(__name__)

UNAVAILABLE_REASONS = {
    CategoryType.ALLERGEN_FREE: (
        "All dishes contain this allergen or carry cross-contact risks that cannot be eliminated."
    ),
    CategoryType.DIETARY_STYLE: "No dish meets this dietary style, even with modifications.",
    CategoryType.HEALTH_FOCUSED: "No dish is below the threshold, or nutrition data is missing.",
}


# --- Collaborator response shape ---

class _JudgedDish(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    requires_modification: bool = Field(default=False, alias="requiresModification")
    modifications: Optional[List[str]] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class _JudgedCategory(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category_id: str = Field(alias="categoryId")
    status: Optional[str] = None
    total_available: Optional[int] = Field(default=None, alias="totalAvailable")
    available_dishes: List[_JudgedDish] = Field(default_factory=list, alias="availableDishes")
    reason: Optional[str] = None
    warning: Optional[str] = None


class _JudgedMenu(BaseModel):
    model_config = ConfigDict(extra="ignore")

    categories: List[_JudgedCategory]


# --- Deterministic helpers ---

def bucket_status(count: int) -> AvailabilityStatus:
    """Fixed availability buckets: 0 → unavailable, 1–4 → limited, 5+ → available."""
    if count < LIMITED_MIN:
        return AvailabilityStatus.UNAVAILABLE
    if count < AVAILABLE_MIN:
        return AvailabilityStatus.LIMITED
    return AvailabilityStatus.AVAILABLE


def build_dish_summary(dish: Dish) -> Dict[str, Any]:
    """Flatten a dish snapshot into the summary handed to the classification collaborator."""
    return {
        "id": dish.id,
        "name": dish.name,
        "description": dish.description,
        "description_allergens": list(dish.description_allergens),
        "nutrition": {
            "calories": dish.calories,
            "protein_g": dish.protein_g,
            "carbs_g": dish.carbs_g,
            "fat_g": dish.fat_g,
            "sodium_mg": dish.sodium_mg
        },
        "ingredients": [
            {
                "name": link.display_name,
                "allergens": link.ingredient.allergens if link.ingredient else None,
                "removable": link.is_removable,
                "substitutable": link.is_substitutable,
                "substitutes": [{"name": s.name, "allergens": s.allergens} for s in link.substitutes]
            }
            for link in dish.ingredients
        ],
        "cooking_steps": [
            {
                "step": step.step_number,
                "description": step.description,
                "cross_contact_risk": step.cross_contact_risk,
                "modifiable": step.is_modifiable,
                "modifiable_allergens": list(step.modifiable_allergens)
            }
            for step in dish.cooking_steps
        ]
    }


def merge_category(
    category: DietaryCategory,
    judged: _JudgedCategory,
    dishes_by_id: Dict[str, Dish]
) -> CategoryAvailability:
    """Merge the collaborator's per-dish judgments for one category.

    The collaborator's own status and totals are ignored; availability is
    recomputed from the merged dish list. Unknown or repeated dish ids are dropped.
    """
    available: List[AvailableDish] = []
    seen = set()
    for judged_dish in judged.available_dishes:
        if judged_dish.id in seen:
            continue
        dish = dishes_by_id.get(judged_dish.id)
        if dish is None:
            logger.warning(
                f"Classification for '{category.id}' referenced unknown dish id '{judged_dish.id}'; ignoring"
            )
            continue
        seen.add(judged_dish.id)
        modifications = [m.strip() for m in judged_dish.modifications or [] if m.strip()]
        available.append(AvailableDish(
            id=dish.id,
            name=dish.name,
            requires_modification=judged_dish.requires_modification,
            modifications=modifications or None
        ))

    count = len(available)
    status = bucket_status(count)
    needs_changes = sum(1 for d in available if d.requires_modification)

    reason = None
    if status is AvailabilityStatus.UNAVAILABLE:
        reason = judged.reason or f"No {category.name.lower()} items on your menu. {UNAVAILABLE_REASONS[category.type]}"
    warning = judged.warning
    if not warning and status is AvailabilityStatus.LIMITED:
        warning = (
            f"Only {count} dish{'' if count == 1 else 'es'} available. "
            f"Consider adding more {category.name.lower()} options for better accessibility."
        )

    return CategoryAvailability(
        category_id=category.id,
        category_name=category.name,
        status=status,
        total_available=count,
        ready_as_is=count - needs_changes,
        requires_modification=needs_changes,
        available_dishes=available,
        reason=reason,
        warning=warning
    )


class DietaryAvailabilityAggregator:
    """Whole-menu dietary availability, judged by the external collaborator.

    Each analyze() call supersedes earlier ones: the stored report is replaced
    wholesale on success, kept on failure, and a run that completes after a
    newer run has started is discarded.
    """

    def __init__(self, service=None) -> None:
        self.service = service or classification_service
        self._lock = threading.Lock()
        self._generation = 0
        self._report: Optional[DietaryAvailabilityReport] = None
        self._last_error: Optional[str] = None

    def analyze(
        self,
        dishes: Iterable[Dish],
        catalog: CategoryCatalog = DEFAULT_CATALOG
    ) -> DietaryAvailabilityResult:
        """
        Run one re-analysis of the whole active menu.

        Args:
            dishes: Dish snapshots; inactive dishes are skipped
            catalog: Categories to analyse

        Returns:
            DietaryAvailabilityResult; on failure the previous report is returned
            with state "analysis_unavailable"
        """
        active = [d for d in dishes if d.is_active]
        with self._lock:
            self._generation += 1
            generation = self._generation

        summaries = [build_dish_summary(d) for d in active]
        logger.info(f"Requesting dietary classification for {len(summaries)} dishes x {len(catalog)} categories")
        try:
            raw = self.service.classify_menu(summaries, catalog)
        except Exception as e:
            logger.error(f"Dietary classification service raised: {e}")
            raw = None
        if raw is None:
            return self._fail(generation, "Dietary classification service is unavailable")

        try:
            judged = _JudgedMenu.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Malformed dietary classification response: {e}")
            return self._fail(generation, "Dietary classification returned a malformed response")

        by_category: Dict[str, _JudgedCategory] = {}
        for entry in judged.categories:
            by_category.setdefault(entry.category_id, entry)
        missing = [c.id for c in catalog if c.id not in by_category]
        if missing:
            logger.error(f"Dietary classification response is missing categories: {missing}")
            return self._fail(generation, f"Dietary classification omitted categories: {', '.join(missing)}")

        dishes_by_id = {d.id: d for d in active}
        report = DietaryAvailabilityReport(
            generated_at=datetime.now(timezone.utc).isoformat(),
            catalog_version=catalog.version,
            dish_count=len(active),
            categories=[merge_category(c, by_category[c.id], dishes_by_id) for c in catalog]
        )

        with self._lock:
            if generation != self._generation:
                logger.info(f"Discarding superseded dietary analysis run {generation}")
                return self._snapshot()
            self._report = report
            self._last_error = None
            return self._snapshot()

    def current(self) -> DietaryAvailabilityResult:
        with self._lock:
            return self._snapshot()

    def clear(self) -> None:
        with self._lock:
            self._report = None
            self._last_error = None

    def _fail(self, generation: int, message: str) -> DietaryAvailabilityResult:
        with self._lock:
            if generation == self._generation:
                self._last_error = message
            return DietaryAvailabilityResult(
                state=AnalysisState.UNAVAILABLE,
                report=self._report,
                error=message
            )

    def _snapshot(self) -> DietaryAvailabilityResult:
        if self._last_error:
            return DietaryAvailabilityResult(
                state=AnalysisState.UNAVAILABLE,
                report=self._report,
                error=self._last_error
            )
        if self._report is None:
            return DietaryAvailabilityResult(state=AnalysisState.NOT_RUN)
        return DietaryAvailabilityResult(state=AnalysisState.READY, report=self._report)


dietary_availability_aggregator = DietaryAvailabilityAggregator()
