"""
bootcore - Name Forms

Case conversion for component logical names. A name such as ``GoodModule``,
``good-module`` or ``good_module`` splits into the same words and produces the
same derived forms, which is what configuration lookup and resolution rely on.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])|([A-Z]+)([A-Z][a-z])")
_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")


def split_words(name: str) -> List[str]:
    """Split any case convention into lowercase words."""
    spaced = _BOUNDARY.sub(lambda m: f"{m.group(1) or m.group(3)} {m.group(2) or m.group(4)}", name)
    return [word.lower() for word in _SEPARATORS.split(spaced) if word]


def camel_case(name: str) -> str:
    words = split_words(name)
    if not words:
        return ""
    return words[0] + "".join(word.capitalize() for word in words[1:])


def pascal_case(name: str) -> str:
    return "".join(word.capitalize() for word in split_words(name))


def param_case(name: str) -> str:
    return "-".join(split_words(name))


def snake_case(name: str) -> str:
    return "_".join(split_words(name))


@dataclass(frozen=True, slots=True)
class DerivedNames:
    """Every name form a component is known by."""

    raw: str
    camel: str
    param: str
    pascal: str
    snake: str

    @classmethod
    def from_name(cls, name: str) -> "DerivedNames":
        return cls(
            raw=name,
            camel=camel_case(name),
            param=param_case(name),
            pascal=pascal_case(name),
            snake=snake_case(name),
        )


__all__ = [
    "DerivedNames",
    "split_words",
    "camel_case",
    "pascal_case",
    "param_case",
    "snake_case",
]
