from dataclasses import dataclass
from typing import Iterable, List, Optional

from dishguard.core.rules import LEGACY_POLICY_KEYWORDS
from dishguard.models import IngredientLink, Substitute
from dishguard.services.allergen_matcher import matches_any


@dataclass(frozen=True)
class Resolution:
    resolvable: bool
    suggestion: Optional[str] = None


UNRESOLVED = Resolution(resolvable=False)


def safe_substitutes(link: IngredientLink, profile: Iterable[str]) -> List[Substitute]:
    """Substitutes whose own allergen tags match no profile entry.

    A substitute with unknown tags is never considered safe.
    """
    entries = list(profile)
    safe = []
    for substitute in link.substitutes:
        if substitute.allergens is None:
            continue
        if any(matches_any(tag, entries) for tag in substitute.allergens):
            continue
        safe.append(substitute)
    return safe


def policy_allows_removal(modification_policy: Optional[str]) -> bool:
    """Back-compat check on the dish's legacy free-text modification policy."""
    if not isinstance(modification_policy, str):
        return False
    policy = modification_policy.lower()
    return any(keyword in policy for keyword in LEGACY_POLICY_KEYWORDS)


def resolve_ingredient(
    link: IngredientLink,
    profile: Iterable[str],
    modification_policy: Optional[str] = None
) -> Resolution:
    """Decide whether an ingredient occurrence's allergen contribution can be neutralized.

    Args:
        link: The dish↔ingredient occurrence (flags, ingredient, substitutes).
        profile: Normalized customer allergen entries.
        modification_policy: The dish's legacy free-text policy.

    Returns:
        Resolution with a suggestion when resolvable.

    Notes:
        - Removal wins over substitution.
        - Substitution needs at least one substitute free of every profile allergen.
        - The legacy policy only applies when neither flag is set.
    """
    name = link.display_name
    if link.is_removable:
        return Resolution(True, f"Remove {name}")

    if link.is_substitutable:
        safe = safe_substitutes(link, profile)
        if safe:
            options = " or ".join(s.name for s in safe)
            return Resolution(True, f"Substitute {name} with {options}")
        return UNRESOLVED

    if policy_allows_removal(modification_policy):
        return Resolution(True, f"Remove {name}")

    return UNRESOLVED
