"""Typed access to Keycloak attribute maps.

Keycloak stores group and role attributes as ``dict[str, list[str]]``. This
wrapper keeps the loosely-typed map at the API boundary and exposes typed
getters/setters keyed by well-known attribute names.
"""
from __future__ import annotations
from typing import Dict, List, Optional, Iterator


class Attributes:
    """Typed accessor over a Keycloak attribute bag.

    Usage:
        attrs = Attributes.from_json(group_json.get("attributes"))
        attrs.get_string("created_by")
        attrs.set_bool("locked", True)
    """

    def __init__(self, values: Optional[Dict[str, List[str]]] = None):
        self._values: Dict[str, List[str]] = {}
        for key, value in (values or {}).items():
            self._values[key] = list(value or [])

    @classmethod
    def from_json(cls, raw) -> "Attributes":
        """Build from a raw JSON attribute map, tolerating scalar values."""
        values: Dict[str, List[str]] = {}
        if isinstance(raw, dict):
            for key, value in raw.items():
                if value is None:
                    continue
                if isinstance(value, list):
                    values[str(key)] = [str(v) for v in value]
                else:
                    values[str(key)] = [str(value)]
        return cls(values)

    def to_json(self) -> Dict[str, List[str]]:
        return {key: list(value) for key, value in self._values.items()}

    def get_string(self, key: str) -> Optional[str]:
        """Return the first value stored under key, or None."""
        values = self._values.get(key)
        if not values:
            return None
        return values[0]

    def set_string(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self._values.pop(key, None)
            return
        self._values[key] = [value]

    def get_bool(self, key: str) -> Optional[bool]:
        """Return the boolean stored under key.

        Raises:
            ValueError: If the stored value is not "true" or "false"
        """
        value = self.get_string(key)
        if value is None:
            return None
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ValueError(f"Attribute '{key}' is not a boolean: {value!r}")

    def set_bool(self, key: str, value: Optional[bool]) -> None:
        self.set_string(key, None if value is None else str(bool(value)).lower())

    def get_strings(self, key: str) -> List[str]:
        return list(self._values.get(key, []))

    def set_strings(self, key: str, values: Optional[List[str]]) -> None:
        if not values:
            self._values.pop(key, None)
            return
        self._values[key] = list(values)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Attributes):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Attributes({self._values!r})"
