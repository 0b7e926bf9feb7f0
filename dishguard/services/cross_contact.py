from dataclasses import dataclass
from typing import Optional

from dishguard.models import CookingStep
from dishguard.services.allergen_matcher import matches_any


@dataclass(frozen=True)
class RiskAssessment:
    modifiable: bool
    suggestion: Optional[str] = None
    reason: Optional[str] = None


def is_modifiable_risk(step: CookingStep, tag: str) -> bool:
    """A risk tag is modifiable only on a modifiable step that lists it (or lists nothing)."""
    if not step.is_modifiable:
        return False
    if not step.modifiable_allergens:
        return True
    return matches_any(tag, step.modifiable_allergens)


def describe_risk(step: CookingStep, tag: str) -> str:
    description = step.description.strip() if step.description else f"Step {step.step_number}"
    return f"{description} (risk: {tag})"


def assess_step_risk(step: CookingStep, tag: str) -> RiskAssessment:
    """Classify one matched cross-contact risk tag on a cooking step."""
    if is_modifiable_risk(step, tag):
        notes = (step.modification_notes or "").strip()
        suggestion = notes or f"Step {step.step_number}: adjust preparation to avoid {tag}"
        return RiskAssessment(modifiable=True, suggestion=suggestion)
    return RiskAssessment(modifiable=False, reason=describe_risk(step, tag))
