"""
Naming rules shared by the registry, the migration engine and the routes.

Entity names come straight from the model description, so every derived
name (record key, table, envelope key, foreign-key column) is computed here
and nowhere else.
"""

from __future__ import annotations

_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "ox": "oxen",
    "datum": "data",
    "medium": "media",
    "criterion": "criteria",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
}

# Words whose plural is the word itself
_UNCOUNTABLE = frozenset(
    {"equipment", "information", "rice", "money", "species", "series", "fish", "sheep", "news"}
)

_VES_ENDINGS = ("elf", "alf", "olf", "eaf", "oaf", "arf")
_OES_WORDS = ("hero", "potato", "tomato", "echo", "veto")


def pluralize(word: str) -> str:
    """
    Pluralize a lower-case English noun.

    Examples:
        >>> pluralize("user")
        'users'
        >>> pluralize("category")
        'categories'
        >>> pluralize("person")
        'people'
        >>> pluralize("status")
        'statuses'
    """
    if not word or word in _UNCOUNTABLE:
        return word
    if word in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[word]

    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if word.endswith("y"):
        if len(word) > 1 and word[-2] in "aeiou":
            return word + "s"
        return word[:-1] + "ies"
    if word.endswith(_VES_ENDINGS):
        return word[:-1] + "ves"
    if word.endswith("fe"):
        return word[:-2] + "ves"
    if word.endswith(_OES_WORDS):
        return word + "es"
    return word + "s"


def record_key(entity_name: str) -> str:
    """Registry key for an entity: first letter upper-cased, the rest lower-cased."""
    return entity_name.capitalize()


def singular_key(entity_name: str) -> str:
    """Envelope key for single-record responses (``{"user": {...}}``)."""
    return entity_name.lower()


def table_name_for(entity_name: str) -> str:
    """Table (and collection) name: lower-cased, pluralized entity name."""
    return pluralize(entity_name.lower())


def foreign_key_column(relationship_name: str) -> str:
    """Column holding a to-one reference (``author`` -> ``author_id``)."""
    return f"{relationship_name}_id"
