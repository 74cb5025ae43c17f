"""Maven version ordering and version-range selection.

Ordering follows Maven's ComparableVersion closely enough for range selection:
numeric items compare numerically, known qualifiers are ordered
alpha < beta < milestone < rc < snapshot < (release) < sp, unknown qualifiers sort
after `sp` lexically, and trailing zero/release items are insignificant (1.0 == 1.0.0 == 1-ga).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

_ITEM = re.compile(r"\d+|[a-z]+")

_QUALIFIER_ALIASES = {
    "a": "alpha",
    "b": "beta",
    "m": "milestone",
    "cr": "rc",
    "ga": "",
    "final": "",
    "release": "",
}
_QUALIFIER_RANK = {
    "alpha": 0,
    "beta": 1,
    "milestone": 2,
    "rc": 3,
    "snapshot": 4,
    "": 5,
    "sp": 6,
}
_UNKNOWN_QUALIFIER_RANK = 7
_RELEASE_KEY = (1, _QUALIFIER_RANK[""], "")


def _item_key(item: str) -> tuple[int, int, str]:
    if item.isdigit():
        return (2, int(item), "")
    qualifier = _QUALIFIER_ALIASES.get(item, item)
    if qualifier in _QUALIFIER_RANK:
        return (1, _QUALIFIER_RANK[qualifier], "")
    return (1, _UNKNOWN_QUALIFIER_RANK, qualifier)


@total_ordering
class MavenVersion:
    def __init__(self, text: str) -> None:
        self.text = text.strip()
        keys: list[tuple[int, int, str]] = []
        for item in _ITEM.findall(self.text.lower()):
            key = _item_key(item)
            if key[0] == 1:
                # 1.0-rc1 orders like 1-rc1: zeros before a qualifier are insignificant
                while keys and keys[-1] == (2, 0, "") and len(keys) > 1:
                    keys.pop()
            keys.append(key)
        while keys and keys[-1] in ((2, 0, ""), _RELEASE_KEY):
            keys.pop()
        self._keys = tuple(keys)

    def _padded(self, other: "MavenVersion") -> tuple[tuple, tuple]:
        size = max(len(self._keys), len(other._keys))
        pad = lambda keys: keys + (_RELEASE_KEY,) * (size - len(keys))  # noqa: E731
        return pad(self._keys), pad(other._keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MavenVersion):
            return NotImplemented
        a, b = self._padded(other)
        return a == b

    def __lt__(self, other: "MavenVersion") -> bool:
        a, b = self._padded(other)
        return a < b

    def __hash__(self) -> int:
        return hash(self._keys)

    def __repr__(self) -> str:
        return f"MavenVersion({self.text!r})"


@dataclass(frozen=True)
class _Restriction:
    lower: MavenVersion | None
    lower_inclusive: bool
    upper: MavenVersion | None
    upper_inclusive: bool

    def contains(self, version: MavenVersion) -> bool:
        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.upper_inclusive):
                return False
        return True


def is_range(version_range: str) -> bool:
    version_range = version_range.strip()
    return version_range.startswith("[") or version_range.startswith("(")


def parse_range(version_range: str) -> list[_Restriction]:
    """Parse `[1.0,2.0)`, `[1.5]`, `(,1.0],[1.2,)` and friends.

    Raises:
        ValueError: If the range is not well formed
    """
    restrictions: list[_Restriction] = []
    rest = version_range.strip()
    while rest:
        if rest[0] not in "[(":
            raise ValueError(f"Invalid version range: {version_range}")
        close = min((i for i in (rest.find("]"), rest.find(")")) if i != -1), default=-1)
        if close == -1:
            raise ValueError(f"Unclosed version range: {version_range}")

        lower_inclusive = rest[0] == "["
        upper_inclusive = rest[close] == "]"
        body = rest[1:close]

        if "," not in body:
            if not (lower_inclusive and upper_inclusive) or not body.strip():
                raise ValueError(f"Invalid single-version range: {version_range}")
            exact = MavenVersion(body)
            restrictions.append(_Restriction(exact, True, exact, True))
        else:
            low_text, high_text = (part.strip() for part in body.split(",", 1))
            restrictions.append(
                _Restriction(
                    MavenVersion(low_text) if low_text else None,
                    lower_inclusive,
                    MavenVersion(high_text) if high_text else None,
                    upper_inclusive,
                )
            )

        rest = rest[close + 1:].lstrip()
        if rest.startswith(","):
            rest = rest[1:].lstrip()
    return restrictions


def select_version(version_range: str, available: list[str]) -> str | None:
    """Highest available version satisfying the range, or None."""
    restrictions = parse_range(version_range)
    candidates = [
        v for v in available
        if any(r.contains(MavenVersion(v)) for r in restrictions)
    ]
    if not candidates:
        return None
    return max(candidates, key=MavenVersion)
