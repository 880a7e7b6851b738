"""
Core data structures for request handling.

Provides:
- MultiDict: Read-only multi-value mapping for query params and form data
- Headers: Case-insensitive, multi-value header access
- ParsedContentType: Content-Type parsing helper
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


# ============================================================================
# MultiDict
# ============================================================================

class MultiDict(Mapping[str, str]):
    """
    Read-only view over ``(key, value)`` pairs from a query string or form.

    Indexing yields the first value for a key; ``get_all`` keeps repeats
    in arrival order.
    """

    def __init__(self, pairs: Iterable[Tuple[str, str]] = ()):
        self._values: Dict[str, List[str]] = {}
        for key, value in pairs:
            self._values.setdefault(key, []).append(value)

    def __getitem__(self, key: str) -> str:
        return self._values[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"MultiDict({self._values!r})"

    def get_all(self, key: str) -> List[str]:
        return list(self._values.get(key, ()))


# ============================================================================
# Headers
# ============================================================================

@dataclass
class Headers:
    """
    Case-insensitive header access over raw ASGI header pairs.
    """

    raw: List[Tuple[bytes, bytes]] = field(default_factory=list)
    _index: Dict[str, List[str]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._index = {}
        for name, value in self.raw:
            key = name.decode("latin-1").lower()
            self._index.setdefault(key, []).append(value.decode("latin-1"))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for header (case-insensitive)."""
        values = self._index.get(name.lower())
        return values[0] if values else default

    def get_all(self, name: str) -> List[str]:
        """Get all values for header (case-insensitive)."""
        return list(self._index.get(name.lower(), []))

    def has(self, name: str) -> bool:
        return name.lower() in self._index

    def __contains__(self, name: str) -> bool:
        return self.has(name)


# ============================================================================
# Content-Type
# ============================================================================

@dataclass(frozen=True)
class ParsedContentType:
    """Media type and parameters of a Content-Type header."""

    media_type: str
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def charset(self) -> str:
        return self.params.get("charset", "utf-8")

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ParsedContentType"]:
        if not value:
            return None
        media_type, _, rest = value.partition(";")
        params: Dict[str, str] = {}
        for part in rest.split(";"):
            key, sep, val = part.partition("=")
            if sep:
                params[key.strip().lower()] = val.strip().strip('"')
        return cls(media_type=media_type.strip().lower(), params=params)
