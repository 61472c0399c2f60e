"""
Ordered, case-insensitive header multi-map.
"""

import re
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ..core.exceptions import HeadersFrozenError

# RFC 9110 token characters.
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

HeaderItems = Union["Headers", Dict[str, str], Iterable[Tuple[str, str]]]


class Headers:
    """
    Header collection owned by a single Context.

    Names are stored lower-cased; iteration follows first insertion.
    ``append`` keeps earlier values, ``set`` replaces them.
    """

    __slots__ = ("_items", "_frozen")

    def __init__(self, items: Optional[HeaderItems] = None, *, frozen: bool = False):
        self._items: List[Tuple[str, str]] = []
        self._frozen = False
        if items is not None:
            pairs = items.items() if isinstance(items, (Headers, dict)) else items
            for name, value in pairs:
                self.append(name, value)
        self._frozen = frozen

    @staticmethod
    def _normalize(name: str) -> str:
        if not isinstance(name, str) or not _TOKEN_RE.match(name):
            raise ValueError(f"Invalid header name: {name!r}")
        return name.lower()

    def _check_writable(self) -> None:
        if self._frozen:
            raise HeadersFrozenError("Header collection is read-only")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Headers":
        self._frozen = True
        return self

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value stored for ``name``."""
        key = name.lower()
        for item_name, value in self._items:
            if item_name == key:
                return value
        return default

    def get_all(self, name: str) -> List[str]:
        key = name.lower()
        return [value for item_name, value in self._items if item_name == key]

    def append(self, name: str, value: object) -> None:
        self._check_writable()
        self._items.append((self._normalize(name), str(value)))

    def set(self, name: str, value: object) -> None:
        """Replace every value of ``name`` with ``value``, keeping its position."""
        self._check_writable()
        key = self._normalize(name)
        value = str(value)
        for index, (item_name, _) in enumerate(self._items):
            if item_name == key:
                self._items[index] = (key, value)
                self._items = [
                    item for i, item in enumerate(self._items) if i <= index or item[0] != key
                ]
                return
        self._items.append((key, value))

    def setdefault(self, name: str, value: object) -> str:
        existing = self.get(name)
        if existing is not None:
            return existing
        self.append(name, value)
        return str(value)

    def delete(self, name: str) -> None:
        self._check_writable()
        key = name.lower()
        self._items = [item for item in self._items if item[0] != key]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._items)

    def to_dict(self) -> Dict[str, Union[str, List[str]]]:
        """Collapse to a plain dict; repeated values are comma-joined except set-cookie."""
        result: Dict[str, Union[str, List[str]]] = {}
        for name in self:
            values = self.get_all(name)
            result[name] = values if name == "set-cookie" else ", ".join(values)
        return result

    def copy(self) -> "Headers":
        return Headers(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        seen = set()
        for name, _ in self._items:
            if name not in seen:
                seen.add(name)
                yield name

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"
