"""
Word inflection used to derive table names from model class names.
"""

import re

PLURAL_RULES: list[tuple[str, str]] = [
    (r"(x|ch|ss)$", r"\1es"),  # box, search, process
    (r"([^aeiouy]|qu)y$", r"\1ies"),  # query, liability
    (r"(?:([^f])fe|([lr])f)$", r"\1\2ves"),  # half, life
    (r"sis$", "ses"),  # basis, analysis
    (r"([ti])um$", r"\1a"),  # datum, medium
    (r"person$", "people"),
    (r"man$", "men"),
    (r"child$", "children"),
    (r"s$", "s"),
    (r"$", "s"),
]

SINGULAR_RULES: list[tuple[str, str]] = [
    (r"(x|ch|ss)es$", r"\1"),
    (r"([^aeiouy]|qu)ies$", r"\1y"),
    (r"([lr])ves$", r"\1f"),
    (r"([^f])ves$", r"\1fe"),
    (r"(analy|ba|diagno|parenthe|progno|synop|the)ses$", r"\1sis"),
    (r"([ti])a$", r"\1um"),
    (r"people$", "person"),
    (r"men$", "man"),
    (r"status$", "status"),
    (r"children$", "child"),
    (r"s$", ""),
]


def _apply(word: str, rules: list[tuple[str, str]]) -> str:
    for pattern, replacement in rules:
        result, count = re.subn(pattern, replacement, word, count=1)
        if count:
            return result
    return word


def pluralize(word: str) -> str:
    """Return the plural form of word."""
    return _apply(word, PLURAL_RULES)


def singularize(word: str) -> str:
    """Return the singular form of word."""
    return _apply(word, SINGULAR_RULES)


def camelize(word: str) -> str:
    """Convert snake_case into CamelCase."""
    return "".join(part.capitalize() for part in word.split("_"))


def snakefy(word: str) -> str:
    """Convert CamelCase into snake_case."""
    return re.sub(r"(.)([A-Z])", r"\1_\2", word).lower()
