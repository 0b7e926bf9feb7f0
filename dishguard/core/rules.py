from typing import Dict, Tuple

# --- Allergen Taxonomy ---
# Closed set of tags an ingredient, substitute, description or cooking step may carry.
TAXONOMY_VERSION = "2024.1"

ALLERGEN_TAXONOMY: Tuple[str, ...] = (
    "Milk", "Eggs", "Fish", "Shellfish", "Tree Nuts",
    "Peanuts", "Wheat", "Soy", "Sesame", "Gluten",
    "Mustard", "Celery", "Lupin", "Mollusks", "Sulfites",
)

# Legacy free-text modification policy words that imply an ingredient can be left out.
LEGACY_POLICY_KEYWORDS: Tuple[str, ...] = ("remove", "optional", "substitute")

# --- Menu Availability Buckets ---
LIMITED_MIN = 1
AVAILABLE_MIN = 5

# --- Allergen-Free Aliases ---
# Maps an allergen-free category to the keywords that reveal the allergen in a tag or ingredient name.
ALLERGEN_ALIASES: Dict[str, Tuple[str, ...]] = {
    "shellfish": ("shellfish", "crustacean", "shrimp", "prawn", "crab", "lobster", "crayfish", "langoustine"),
    "tree_nuts": (
        "tree nut", "almond", "cashew", "walnut", "pecan", "pistachio",
        "macadamia", "hazelnut", "brazil nut", "pine nut",
    ),
    "peanuts": ("peanut", "groundnut"),
    "milk": ("milk", "dairy", "lactose", "cheese", "butter", "cream", "whey", "casein", "ghee", "yogurt"),
    "gluten": ("gluten", "wheat", "barley", "rye", "flour", "bread", "pasta", "couscous", "semolina", "spelt"),
    "eggs": ("egg", "mayonnaise", "meringue", "aioli"),
    "soy": ("soy", "soya", "soybean", "tofu", "edamame", "tempeh", "miso"),
    "fish": ("fish", "salmon", "tuna", "cod", "halibut", "anchovy", "sardine", "tilapia", "trout", "mackerel"),
    "sesame": ("sesame", "tahini", "benne"),
}

# Text that contains an alias but does not carry the allergen (e.g. "peanut butter" is not dairy).
ALLERGEN_ALIAS_EXCEPTIONS: Dict[str, Tuple[str, ...]] = {
    "milk": (
        "peanut butter", "almond butter", "cashew butter", "cocoa butter", "coconut milk",
        "coconut cream", "oat milk", "almond milk", "soy milk", "rice milk", "cream of tartar", "dairy-free",
        "butternut",
    ),
    "gluten": ("gluten-free", "buckwheat", "rice flour", "almond flour", "coconut flour", "corn flour", "chickpea flour"),
    "eggs": ("eggplant", "egg-free"),
    "fish": ("shellfish", "crayfish"),
    "peanuts": ("peanut-free",),
    "soy": ("soy-free",),
}

# --- Dietary-Style Keyword Families ---
MEAT_KEYWORDS: Tuple[str, ...] = (
    "meat", "beef", "pork", "chicken", "lamb", "veal", "turkey", "duck", "goat", "venison",
    "bacon", "ham", "sausage", "steak", "prosciutto", "pancetta", "salami", "pepperoni", "chorizo", "lard",
)
SEAFOOD_KEYWORDS: Tuple[str, ...] = (
    "fish", "salmon", "tuna", "cod", "halibut", "tilapia", "trout", "anchovy", "sardine", "mackerel",
    "shrimp", "prawn", "crab", "lobster", "clam", "mussel", "oyster", "scallop", "squid", "calamari",
    "octopus", "seafood",
)
DAIRY_KEYWORDS: Tuple[str, ...] = ALLERGEN_ALIASES["milk"]
EGG_KEYWORDS: Tuple[str, ...] = ALLERGEN_ALIASES["eggs"]
GELATIN_KEYWORDS: Tuple[str, ...] = ("gelatin", "gelatine")
HONEY_KEYWORDS: Tuple[str, ...] = ("honey",)
PORK_KEYWORDS: Tuple[str, ...] = (
    "pork", "bacon", "ham", "lard", "prosciutto", "pancetta", "chorizo", "salami", "pepperoni",
)
NON_KOSHER_SEAFOOD_KEYWORDS: Tuple[str, ...] = (
    "shrimp", "prawn", "crab", "lobster", "crayfish", "clam", "mussel", "oyster", "scallop",
    "squid", "calamari", "octopus", "eel", "shellfish",
)
PORK_EXCEPTIONS: Tuple[str, ...] = (
    "graham", "champignon", "hamachi", "turkey bacon", "beef bacon", "collard",
)
ALCOHOL_KEYWORDS: Tuple[str, ...] = (
    "wine", "beer", "rum", "vodka", "whiskey", "bourbon", "brandy", "sake", "mirin", "liqueur", "alcohol",
    "champagne",
)

# Words that merely contain a banned keyword ("eel" in "peel", "rum" in "drumstick").
KOSHER_EXCEPTIONS: Tuple[str, ...] = ("peel", "steel-cut", "wheel", "champagne")
HALAL_EXCEPTIONS: Tuple[str, ...] = ("ginger beer", "root beer", "non-alcoholic", "drumstick", "crumb", "rump")
# Seafood named as "meat" stays allowed where seafood is.
SEAFOOD_MEAT_EXCEPTIONS: Tuple[str, ...] = ("crabmeat", "crab meat", "lobster meat")

PLANT_BASED_EXCEPTIONS: Tuple[str, ...] = (
    "peanut butter", "almond butter", "cashew butter", "cocoa butter", "coconut milk", "coconut cream",
    "oat milk", "almond milk", "soy milk", "rice milk", "cream of tartar", "eggplant", "vegan",
    "plant-based", "dairy-free", "egg-free", "butternut", "collard",
)

# --- Dietary-Style Blocker Tags ---
ANIMAL_SEAFOOD_TAGS: Tuple[str, ...] = ("Fish", "Shellfish", "Mollusks")
ANIMAL_PRODUCT_TAGS: Tuple[str, ...] = ("Fish", "Shellfish", "Mollusks", "Milk", "Eggs")
NON_KOSHER_TAGS: Tuple[str, ...] = ("Shellfish", "Mollusks")

# --- Health-Focused Thresholds ---
LOW_CARB_MAX_CARBS_G = 20.0
LOW_SODIUM_MAX_SODIUM_MG = 600.0
