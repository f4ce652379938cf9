"""Identifier casing, reserved-word detection and operation-id synthesis.

All helpers are pure functions over strings. Casing splits on any run of
non-alphanumeric characters and before every upper-case letter, so
``"user-profile"``, ``"user_profile"`` and ``"UserProfile"`` all produce the
same words.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

_WORD_SEPARATOR = re.compile(r"[^a-zA-Z0-9]+|(?=[A-Z])")
_KEBAB_ACRONYM = re.compile(r"([A-Z])([A-Z][a-z])")
_KEBAB_CAMEL = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUMERIC_RUN = re.compile(r"[^a-zA-Z0-9]+")

# Language keywords plus built-in global type names that emitted SDKs cannot
# use as class names. Compared case-insensitively.
RESERVED_WORDS: frozenset[str] = frozenset(
    {
        "any",
        "as",
        "boolean",
        "break",
        "case",
        "catch",
        "class",
        "const",
        "constructor",
        "continue",
        "debugger",
        "declare",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "from",
        "function",
        "get",
        "if",
        "implements",
        "import",
        "in",
        "instanceof",
        "interface",
        "is",
        "let",
        "module",
        "namespace",
        "new",
        "null",
        "number",
        "of",
        "package",
        "private",
        "protected",
        "public",
        "require",
        "return",
        "set",
        "static",
        "string",
        "super",
        "switch",
        "symbol",
        "this",
        "throw",
        "true",
        "try",
        "type",
        "typeof",
        "var",
        "void",
        "while",
        "with",
        "yield",
        # global types
        "array",
        "date",
        "error",
        "map",
        "object",
        "promise",
        "record",
        "regexp",
    }
)


def to_pascal_case(value: str) -> str:
    """``"hello-world"`` -> ``"HelloWorld"``."""
    parts = [part for part in _WORD_SEPARATOR.split(value) if part]
    return "".join(part[0].upper() + part[1:].lower() for part in parts)


def to_camel_case(value: str) -> str:
    """``"hello-world"`` -> ``"helloWorld"``."""
    pascal = to_pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def to_kebab_case(value: str) -> str:
    """``"APIUser"`` -> ``"api-user"``, ``"userProfile"`` -> ``"user-profile"``."""
    result = _KEBAB_ACRONYM.sub(r"\1-\2", value)
    result = _KEBAB_CAMEL.sub(r"\1-\2", result)
    result = _NON_ALPHANUMERIC_RUN.sub("-", result)
    return result.strip("-").lower()


def generate_operation_id(method: str, path: str) -> str:
    """Synthesize an operation id from an HTTP method and a path template.

    Path parameters become ``By<Name>`` segments::

        >>> generate_operation_id("get", "/users/{userId}/posts")
        'getUsersByUserIdPosts'
    """
    segments = []
    for segment in path.split("/"):
        if segment.startswith("{") and segment.endswith("}"):
            segments.append("By" + to_pascal_case(segment[1:-1]))
        else:
            segments.append(to_pascal_case(segment))
    return to_camel_case(method.lower() + "".join(segments))


def is_reserved_word(name: str, extra: Optional[Iterable[str]] = None) -> bool:
    """Return True if *name* is reserved, ignoring case."""
    lowered = name.lower()
    if lowered in RESERVED_WORDS:
        return True
    return extra is not None and lowered in {word.lower() for word in extra}


def rename_if_reserved(
    name: str, suffix: str = "_", extra: Optional[Iterable[str]] = None
) -> str:
    """Append *suffix* to *name* when it is reserved, else return it unchanged."""
    if is_reserved_word(name, extra):
        return f"{name}{suffix}"
    return name
