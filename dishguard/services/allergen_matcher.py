from typing import Iterable, Optional


def normalize_tag(value: Optional[str]) -> str:
    """Trim and case-fold an allergen string; non-strings normalize to ''."""
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def allergens_match(source: Optional[str], entry: Optional[str]) -> bool:
    """Return True if two allergen strings denote the same allergen.

    Matching is case-insensitive substring containment in either direction,
    so "Tree Nuts" matches "tree nut" and "Eggs" matches "egg". Blank values
    never match anything.
    """
    a = normalize_tag(source)
    b = normalize_tag(entry)
    if not a or not b:
        return False
    return a in b or b in a


def matches_any(source: Optional[str], entries: Iterable[str]) -> bool:
    return any(allergens_match(source, entry) for entry in entries)


def mentions_keyword(
    text: Optional[str],
    keywords: Iterable[str],
    exceptions: Iterable[str] = ()
) -> Optional[str]:
    """Return the first keyword contained in text, ignoring allowed exception phrases.

    Exception phrases are cut out of the text before the keyword check, so
    "peanut butter" does not reveal dairy while "peanut butter and cream" does.
    """
    lowered = normalize_tag(text)
    if not lowered:
        return None
    for exception in exceptions:
        exception = normalize_tag(exception)
        if exception:
            lowered = lowered.replace(exception, " ")
    for keyword in keywords:
        keyword = normalize_tag(keyword)
        if keyword and keyword in lowered:
            return keyword
    return None
