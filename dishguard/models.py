from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class SafetyStatus(str, Enum):
    SAFE = "safe"
    SAFE_WITH_MODIFICATIONS = "safe-with-modifications"
    UNSAFE = "unsafe"


class CompatibilityStatus(str, Enum):
    COMPATIBLE = "compatible"
    CAN_MODIFY = "can_modify"
    NOT_COMPATIBLE = "not_compatible"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    LIMITED = "limited"
    UNAVAILABLE = "unavailable"


class AnalysisState(str, Enum):
    NOT_RUN = "not_run"
    READY = "ready"
    UNAVAILABLE = "analysis_unavailable"


class CategoryType(str, Enum):
    ALLERGEN_FREE = "allergen-free"
    DIETARY_STYLE = "dietary-style"
    HEALTH_FOCUSED = "health-focused"


# --- Dish Graph (read-only snapshot) ---

class Substitute(BaseModel):
    name: str
    allergens: Optional[List[str]] = Field(default_factory=list)  # None = unknown tags


class Ingredient(BaseModel):
    id: str
    name: str
    allergens: Optional[List[str]] = Field(default_factory=list)  # None = unknown tags


class IngredientLink(BaseModel):
    ingredient_id: Optional[str] = None
    ingredient: Optional[Ingredient] = None  # None when the link is dangling
    is_removable: bool = False
    is_substitutable: bool = False
    substitutes: List[Substitute] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        if self.ingredient is not None:
            return self.ingredient.name
        return f"Unknown ingredient ({self.ingredient_id or 'missing id'})"


class CookingStep(BaseModel):
    step_number: int
    description: str = ""
    cross_contact_risk: Optional[List[str]] = Field(default_factory=list)  # None = unknown risks
    is_modifiable: bool = False
    modifiable_allergens: List[str] = Field(default_factory=list)
    modification_notes: Optional[str] = None


class Dish(BaseModel):
    id: str
    name: str
    category: str = "Other"
    description: Optional[str] = None
    description_allergens: List[str] = Field(default_factory=list)
    price: Optional[float] = None
    calories: Optional[float] = None
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    sodium_mg: Optional[float] = None
    modification_policy: Optional[str] = None
    is_active: bool = True
    ingredients: List[IngredientLink] = Field(default_factory=list)
    cooking_steps: List[CookingStep] = Field(default_factory=list)
    # Rows the snapshot loader had to drop for this dish (malformed links or steps).
    dropped_rows: int = 0


class CustomerAllergenProfile(BaseModel):
    allergens: List[str] = Field(default_factory=list)

    @field_validator("allergens", mode="before")
    @classmethod
    def normalize_allergens(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        normalized: List[str] = []
        for entry in value:
            if not isinstance(entry, str):
                continue
            cleaned = entry.strip().lower()
            if cleaned and cleaned not in normalized:
                normalized.append(cleaned)
        return normalized

    def is_empty(self) -> bool:
        return not self.allergens


# --- Classification Outputs ---

class SafetyAnalysis(BaseModel):
    status: SafetyStatus
    reasons: List[str] = Field(default_factory=list)
    modification_suggestions: Optional[List[str]] = None
    cross_contact_risks: Optional[List[str]] = None


class DishSafety(BaseModel):
    dish_id: str
    dish_name: str
    category: str
    label: str
    icon: str
    analysis: SafetyAnalysis


class SafetyRequest(BaseModel):
    allergens: List[str] = Field(default_factory=list, description="Customer allergen/dietary profile")


class CategoryInfo(BaseModel):
    id: str
    name: str
    description: str
    type: CategoryType


class MatrixCell(BaseModel):
    status: CompatibilityStatus
    notes: List[str] = Field(default_factory=list)


class MatrixRow(BaseModel):
    dish_id: str
    dish_name: str
    category: str
    cells: Dict[str, MatrixCell]


class CategorySummary(BaseModel):
    compatible: int = 0
    can_modify: int = 0
    not_compatible: int = 0


class CompatibilityMatrix(BaseModel):
    catalog_version: str
    categories: List[CategoryInfo]
    rows: List[MatrixRow]
    summary: Dict[str, CategorySummary]


# --- Dietary Availability ---

class AvailableDish(BaseModel):
    id: str
    name: str
    requires_modification: bool = False
    modifications: Optional[List[str]] = None


class CategoryAvailability(BaseModel):
    category_id: str
    category_name: str
    status: AvailabilityStatus
    total_available: int
    ready_as_is: int
    requires_modification: int
    available_dishes: List[AvailableDish] = Field(default_factory=list)
    reason: Optional[str] = None
    warning: Optional[str] = None


class DietaryAvailabilityReport(BaseModel):
    generated_at: str
    catalog_version: str
    dish_count: int
    categories: List[CategoryAvailability]


class DietaryAvailabilityResult(BaseModel):
    state: AnalysisState
    report: Optional[DietaryAvailabilityReport] = None
    error: Optional[str] = None
