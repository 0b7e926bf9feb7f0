from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from dishguard.core.logging_config import get_logger
from dishguard.models import CustomerAllergenProfile, Dish, DishSafety, SafetyAnalysis, SafetyStatus
from dishguard.services.allergen_matcher import matches_any
from dishguard.services.cross_contact import assess_step_risk
from dishguard.services.modification_resolver import resolve_ingredient

logger = get_logger(__name__)

SOURCE_DESCRIPTION = "description"
SOURCE_INGREDIENT = "ingredient"
SOURCE_COOKING_STEP = "cooking_step"

STATUS_LABELS = {
    SafetyStatus.SAFE: "Safe",
    SafetyStatus.SAFE_WITH_MODIFICATIONS: "Safe with modifications",
    SafetyStatus.UNSAFE: "Unsafe",
}
STATUS_ICONS = {
    SafetyStatus.SAFE: "🟢",
    SafetyStatus.SAFE_WITH_MODIFICATIONS: "🟠",
    SafetyStatus.UNSAFE: "🔴",
}


class SignalState(str, Enum):
    FORCED = "forced"
    MODIFIABLE = "modifiable"


@dataclass(frozen=True)
class FoundSignal:
    source: str
    label: str
    state: SignalState


class _Findings:
    """Per-dish accumulator. Each found source is keyed by where it came from,
    so two sources sharing a label never collapse into one entry."""

    def __init__(self) -> None:
        self.signals: Dict[Tuple, FoundSignal] = {}
        self.suggestions: List[str] = []
        self.cross_contact_risks: List[str] = []
        self.unverified: List[str] = []

    def add(self, key: Tuple, signal: FoundSignal) -> None:
        if key not in self.signals:
            self.signals[key] = signal

    def suggest(self, suggestion: Optional[str]) -> None:
        if suggestion and suggestion not in self.suggestions:
            self.suggestions.append(suggestion)

    def risk(self, description: str) -> None:
        if description not in self.cross_contact_risks:
            self.cross_contact_risks.append(description)

    def of_source(self, source: str) -> List[FoundSignal]:
        return [s for s in self.signals.values() if s.source == source]

    def labels(self, state: Optional[SignalState] = None) -> List[str]:
        labels: List[str] = []
        for signal in self.signals.values():
            if state is not None and signal.state is not state:
                continue
            if signal.label not in labels:
                labels.append(signal.label)
        return labels


ProfileInput = Union[CustomerAllergenProfile, Iterable[str], None]


def _as_profile(profile: ProfileInput) -> CustomerAllergenProfile:
    if isinstance(profile, CustomerAllergenProfile):
        return profile
    return CustomerAllergenProfile(allergens=list(profile or []))


class DishSafetyClassifier:
    def classify(self, dish: Dish, profile: ProfileInput) -> SafetyAnalysis:
        """Classify a dish for a customer's allergen profile.

        Args:
            dish: Resolved dish snapshot with ingredients and cooking steps.
            profile: Customer allergen profile (or a plain list of entries).

        Returns:
            SafetyAnalysis with status, reasons and optional suggestions/risks.

        Notes:
            - Description tags describe the dish as served and are never modifiable.
            - A fixed cross-contact risk or unverifiable data forces "unsafe" even
              when every ingredient-level allergen could be removed or substituted.
        """
        customer = _as_profile(profile)
        if customer.is_empty():
            return SafetyAnalysis(status=SafetyStatus.SAFE, reasons=["No dietary restrictions specified"])

        entries = customer.allergens
        findings = _Findings()
        self._check_description(dish, entries, findings)
        self._check_ingredients(dish, entries, findings)
        self._check_cooking_steps(dish, entries, findings)
        if dish.dropped_rows:
            findings.unverified.append(
                f"{dish.dropped_rows} ingredient or preparation record(s) could not be read"
            )

        return self._decide(dish, findings)

    def classify_menu(
        self,
        dishes: Iterable[Dish],
        profile: ProfileInput
    ) -> List[DishSafety]:
        """Classify every dish, ordered for display by category then name."""
        customer = _as_profile(profile)
        ordered = sorted(dishes, key=lambda d: (d.category or "", d.name or ""))
        return [self.classify_dish(dish, customer) for dish in ordered]

    def classify_dish(self, dish: Dish, profile: ProfileInput) -> DishSafety:
        analysis = self.classify(dish, profile)
        return DishSafety(
            dish_id=dish.id,
            dish_name=dish.name,
            category=dish.category,
            label=status_label(analysis.status),
            icon=status_icon(analysis.status),
            analysis=analysis
        )

    def _check_description(self, dish: Dish, entries: List[str], findings: _Findings) -> None:
        for tag in dish.description_allergens:
            if matches_any(tag, entries):
                key = (SOURCE_DESCRIPTION, tag.strip().lower())
                findings.add(key, FoundSignal(SOURCE_DESCRIPTION, tag, SignalState.FORCED))

    def _check_ingredients(self, dish: Dish, entries: List[str], findings: _Findings) -> None:
        for index, link in enumerate(dish.ingredients):
            ingredient = link.ingredient
            if ingredient is None:
                findings.unverified.append(f"Ingredient data unavailable for {link.display_name}")
                continue

            if ingredient.allergens is None:
                findings.unverified.append(f"Allergen information unknown for {ingredient.name}")
            tags = ingredient.allergens or []
            hit = matches_any(ingredient.name, entries) or any(matches_any(t, entries) for t in tags)
            if not hit:
                continue

            resolution = resolve_ingredient(link, entries, dish.modification_policy)
            state = SignalState.MODIFIABLE if resolution.resolvable else SignalState.FORCED
            findings.add((SOURCE_INGREDIENT, index), FoundSignal(SOURCE_INGREDIENT, ingredient.name, state))
            if resolution.resolvable:
                findings.suggest(resolution.suggestion)

    def _check_cooking_steps(self, dish: Dish, entries: List[str], findings: _Findings) -> None:
        for index, step in enumerate(dish.cooking_steps):
            if step.cross_contact_risk is None:
                findings.unverified.append(f"Cross-contact risks unknown for step {step.step_number}")
                continue
            for tag in step.cross_contact_risk:
                if not matches_any(tag, entries):
                    continue
                assessment = assess_step_risk(step, tag)
                key = (SOURCE_COOKING_STEP, index, tag.strip().lower())
                if assessment.modifiable:
                    findings.add(key, FoundSignal(SOURCE_COOKING_STEP, tag, SignalState.MODIFIABLE))
                    findings.suggest(assessment.suggestion)
                else:
                    findings.add(key, FoundSignal(SOURCE_COOKING_STEP, tag, SignalState.FORCED))
                    findings.risk(assessment.reason)

    def _decide(self, dish: Dish, findings: _Findings) -> SafetyAnalysis:
        found = list(findings.signals.values())
        description_hits = findings.of_source(SOURCE_DESCRIPTION)
        risks = findings.cross_contact_risks

        if not found and not risks and not findings.unverified:
            return SafetyAnalysis(
                status=SafetyStatus.SAFE,
                reasons=["No allergens or cross-contact risks detected"]
            )

        all_modifiable = all(s.state is SignalState.MODIFIABLE for s in found)
        if not description_hits and not risks and not findings.unverified and all_modifiable:
            return SafetyAnalysis(
                status=SafetyStatus.SAFE_WITH_MODIFICATIONS,
                reasons=[f"Contains: {', '.join(findings.labels())}"],
                modification_suggestions=list(findings.suggestions),
            )

        reasons: List[str] = []
        if description_hits:
            reasons.append(
                f"Described as containing: {', '.join(s.label for s in description_hits)}"
            )
        if risks:
            reasons.append(f"Cross-contamination risk: {', '.join(risks)}")
        forced_labels = findings.labels(SignalState.FORCED)
        if forced_labels:
            reasons.append(f"Contains non-removable allergens: {', '.join(forced_labels)}")
        if found:
            reasons.append(f"Contains: {', '.join(findings.labels())}")
        if findings.unverified:
            logger.warning(f"Dish '{dish.name}' ({dish.id}) has unverifiable data; reporting unsafe")
            reasons.extend(findings.unverified)

        return SafetyAnalysis(
            status=SafetyStatus.UNSAFE,
            reasons=reasons,
            cross_contact_risks=list(risks) if risks else None,
        )


def status_label(status: SafetyStatus) -> str:
    return STATUS_LABELS[status]


def status_icon(status: SafetyStatus) -> str:
    return STATUS_ICONS[status]


safety_classifier = DishSafetyClassifier()
