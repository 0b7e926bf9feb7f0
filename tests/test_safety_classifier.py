import pytest
from dishguard.models import IngredientLink, SafetyStatus
from dishguard.services.safety_classifier import status_icon, status_label


@pytest.fixture
def menu(make_dish, make_link, make_step):
    """A handful of dishes covering every kind of allergen source."""
    return [
        make_dish("satay", "Chicken Satay", category="Starters",
                  description_allergens=["Peanuts"],
                  ingredients=[make_link("Peanut sauce", ["Peanuts", "Soy"], removable=True)],
                  steps=[make_step(2, ["Peanuts"], description="Grill skewers")]),
        make_dish("burger", "Cheeseburger", category="Mains",
                  ingredients=[
                      make_link("Cheddar cheese", ["Milk"], removable=True),
                      make_link("Brioche bun", ["Wheat", "Gluten", "Eggs", "Milk"], substitutable=True,
                                substitutes=[("Gluten-free bun", ["Eggs"]), ("Lettuce wrap", [])]),
                  ],
                  steps=[make_step(1, ["Wheat", "Milk"], modifiable=True, notes="Skip toasting the bun")]),
        make_dish("sorbet", "Mango Sorbet", category="Desserts",
                  ingredients=[make_link("Mango puree")]),
        make_dish("tofu", "Tofu Bowl", category="Mains",
                  ingredients=[make_link("Tofu", ["Soy"]),
                               make_link("Sesame dressing", ["Sesame"], substitutable=True,
                                         substitutes=[("Ginger dressing", [])])],
                  steps=[make_step(1, ["Shellfish"], description="Shared fryer")]),
    ]


def test_empty_profile_is_always_safe(classifier, menu):
    for dish in menu:
        analysis = classifier.classify(dish, [])
        assert analysis.status is SafetyStatus.SAFE
        assert analysis.reasons == ["No dietary restrictions specified"]


def test_blank_profile_entries_are_ignored(classifier, menu):
    assert classifier.classify(menu[0], ["  ", ""]).status is SafetyStatus.SAFE


def test_classification_is_pure(classifier, menu):
    for dish in menu:
        first = classifier.classify(dish, ["milk", "peanuts"])
        second = classifier.classify(dish, ["milk", "peanuts"])
        assert first == second


@pytest.mark.parametrize("smaller, larger", [
    (["milk"], ["milk", "wheat"]),
    (["peanuts"], ["peanuts", "soy"]),
    (["shellfish"], ["shellfish", "sesame", "eggs"]),
    (["wheat", "eggs"], ["wheat", "eggs", "milk", "soy"]),
])
def test_adding_restrictions_never_makes_a_dish_safer(classifier, menu, smaller, larger):
    for dish in menu:
        if classifier.classify(dish, smaller).status is SafetyStatus.UNSAFE:
            assert classifier.classify(dish, larger).status is not SafetyStatus.SAFE


def test_no_matching_allergen_is_safe(classifier, menu):
    analysis = classifier.classify(menu[2], ["peanuts"])
    assert analysis.status is SafetyStatus.SAFE
    assert analysis.reasons == ["No allergens or cross-contact risks detected"]
    assert analysis.modification_suggestions is None


def test_removable_ingredient_is_safe_with_modifications(classifier, make_dish, make_link):
    dish = make_dish(ingredients=[make_link("Peanut Butter", ["Peanuts"], removable=True)])
    analysis = classifier.classify(dish, ["peanuts"])
    assert analysis.status is SafetyStatus.SAFE_WITH_MODIFICATIONS
    assert "Remove Peanut Butter" in analysis.modification_suggestions
    assert analysis.reasons == ["Contains: Peanut Butter"]


def test_safe_substitute_is_suggested(classifier, make_dish, make_link):
    dish = make_dish(ingredients=[
        make_link("Milk", ["Milk"], substitutable=True, substitutes=[("Oat Milk", [])])
    ])
    analysis = classifier.classify(dish, ["milk"])
    assert analysis.status is SafetyStatus.SAFE_WITH_MODIFICATIONS
    assert any("Oat Milk" in s for s in analysis.modification_suggestions)


def test_description_tag_forces_unsafe(classifier, make_dish, make_link):
    dish = make_dish(
        description_allergens=["Fish"],
        ingredients=[make_link("Fish sauce", ["Fish"], removable=True)]
    )
    analysis = classifier.classify(dish, ["fish"])
    assert analysis.status is SafetyStatus.UNSAFE
    assert analysis.reasons[0] == "Described as containing: Fish"
    assert analysis.modification_suggestions is None


def test_fixed_cross_contact_risk_forces_unsafe(classifier, make_dish, make_step):
    dish = make_dish(steps=[make_step(2, ["Peanuts"], description="Grill skewers")])
    analysis = classifier.classify(dish, ["peanuts"])
    assert analysis.status is SafetyStatus.UNSAFE
    assert "Cross-contamination risk: Grill skewers (risk: Peanuts)" in analysis.reasons
    assert analysis.cross_contact_risks == ["Grill skewers (risk: Peanuts)"]


def test_modifiable_cross_contact_risk_is_safe_with_modifications(classifier, menu):
    analysis = classifier.classify(menu[1], ["milk"])
    assert analysis.status is SafetyStatus.SAFE_WITH_MODIFICATIONS
    assert analysis.modification_suggestions == [
        "Remove Cheddar cheese",
        "Substitute Brioche bun with Gluten-free bun or Lettuce wrap",
        "Skip toasting the bun",
    ]


def test_one_forced_source_outweighs_modifiable_ones(classifier, menu):
    # Sesame dressing can be swapped, but tofu itself cannot be removed.
    analysis = classifier.classify(menu[3], ["soy", "sesame"])
    assert analysis.status is SafetyStatus.UNSAFE
    assert "Contains non-removable allergens: Tofu" in analysis.reasons
    assert "Contains: Tofu, Sesame dressing" in analysis.reasons


def test_sources_sharing_a_label_are_tracked_separately(classifier, make_dish, make_link):
    dish = make_dish(ingredients=[
        make_link("Peanuts", ["Peanuts"], removable=True, ingredient_id="ing-garnish"),
        make_link("Peanuts", ["Peanuts"], ingredient_id="ing-sauce-base"),
    ])
    analysis = classifier.classify(dish, ["peanuts"])
    assert analysis.status is SafetyStatus.UNSAFE
    assert "Contains non-removable allergens: Peanuts" in analysis.reasons


def test_unsafe_reason_order(classifier, menu):
    analysis = classifier.classify(menu[0], ["peanuts"])
    assert analysis.status is SafetyStatus.UNSAFE
    assert analysis.reasons == [
        "Described as containing: Peanuts",
        "Cross-contamination risk: Grill skewers (risk: Peanuts)",
        "Contains non-removable allergens: Peanuts",
        "Contains: Peanuts, Peanut sauce",
    ]


@pytest.mark.parametrize("case", ["dangling", "unknown_tags", "unknown_risks", "dropped_rows"])
def test_unverifiable_data_is_never_safe(classifier, make_dish, make_link, make_step, case):
    if case == "dangling":
        dish = make_dish(ingredients=[IngredientLink(ingredient_id="ing-missing")])
    elif case == "unknown_tags":
        dish = make_dish(ingredients=[make_link("House sauce", None)])
    elif case == "unknown_risks":
        dish = make_dish(steps=[make_step(1, None)])
    else:
        dish = make_dish(ingredients=[make_link("Rice")], dropped_rows=1)

    analysis = classifier.classify(dish, ["milk"])
    assert analysis.status is SafetyStatus.UNSAFE


def test_dangling_link_reason_names_the_missing_ingredient(classifier, make_dish):
    dish = make_dish(ingredients=[IngredientLink(ingredient_id="ing-missing")])
    analysis = classifier.classify(dish, ["milk"])
    assert analysis.reasons == ["Ingredient data unavailable for Unknown ingredient (ing-missing)"]


def test_classify_menu_orders_by_category_then_name(classifier, menu):
    results = classifier.classify_menu(menu, ["milk"])
    assert [r.dish_name for r in results] == ["Mango Sorbet", "Cheeseburger", "Tofu Bowl", "Chicken Satay"]
    burger = results[1]
    assert burger.label == "Safe with modifications"
    assert burger.icon == status_icon(SafetyStatus.SAFE_WITH_MODIFICATIONS)


def test_status_display_helpers():
    assert status_label(SafetyStatus.SAFE) == "Safe"
    assert status_label(SafetyStatus.UNSAFE) == "Unsafe"
    assert status_icon(SafetyStatus.SAFE) == "🟢"
    assert status_icon(SafetyStatus.UNSAFE) == "🔴"
