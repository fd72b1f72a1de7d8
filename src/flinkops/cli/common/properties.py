"""Configuration property parsing utilities.

Translates repeated `-D key=value` CLI arguments into the property mapping
the core layers on top of the installation defaults. Validation lives here
so commands can work with a plain, well-formed dictionary.
"""

from typing import Iterable


def parse_properties(items: Iterable[str]) -> dict[str, str]:
    """
    Build a property mapping from `key=value` strings.

    Later occurrences of the same key win, matching how the options would be
    applied in order. Values may themselves contain `=`.

    Args:
        items: Iterable of property strings in the form `key=value`.

    Returns:
        A dictionary of property keys to values.

    Raises:
        ValueError: If an item does not follow the `key=value` format or has
                    an empty key.
    """
    properties: dict[str, str] = {}

    for item in items:
        if "=" not in item:
            raise ValueError(f"Invalid property: '{item}' (expected key=value)")

        key, value = item.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Invalid property: '{item}' (empty key)")
        properties[key] = value.strip()

    return properties
