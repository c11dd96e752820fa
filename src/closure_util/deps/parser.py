"""Extract Closure provide/require declarations from script text."""

from __future__ import annotations

import re
from dataclasses import dataclass

from closure_util.deps.script import GOOG, DeclaredDependency
from closure_util.errors import ParseError

_CALL_RE = re.compile(
    r"^\s*(?:(?:const|let|var)\s+[^=]+?=\s*)?goog\.(provide|module|require|addDependency)\s*\((.*)$"
)
_NAME_ARG_RE = re.compile(r"""^\s*(['"])([^'"]+)\1\s*\)""")
_ADD_DEPENDENCY_RE = re.compile(
    r"""^\s*(['"])([^'"]+)\1\s*,\s*\[([^\]]*)\]\s*,\s*\[([^\]]*)\]"""
)
_STRING_RE = re.compile(r"""(['"])([^'"]*)\1""")
_PROVIDE_GOOG = "@provideGoog"


@dataclass(frozen=True, slots=True)
class ParsedSource:
    provides: frozenset[str]
    requires: tuple[str, ...]
    provides_goog: bool = False
    dependencies: tuple[DeclaredDependency, ...] = ()


def compile_ignore(pattern: str | re.Pattern[str] | None) -> re.Pattern[str] | None:
    if pattern is None or isinstance(pattern, re.Pattern):
        return pattern
    if not pattern:
        return None
    return re.compile(pattern)


def _strings(raw: str) -> tuple[str, ...]:
    return tuple(match.group(2) for match in _STRING_RE.finditer(raw))


def parse_source(
    source: str,
    path: str,
    ignore_requires: str | re.Pattern[str] | None = None,
) -> ParsedSource:
    """Return the names a script provides and requires.

    Declarations are only recognised at the start of a line. Required names
    matching ``ignore_requires`` are dropped. ``goog.addDependency`` calls are
    collected as declared dependencies and contribute nothing to the file's
    own provides or requires.

    Raises:
        ParseError: A declaration is not called with string literal arguments.
    """
    ignore = compile_ignore(ignore_requires)
    provides: set[str] = set()
    requires: list[str] = []
    dependencies: list[DeclaredDependency] = []

    for lineno, line in enumerate(source.splitlines(), start=1):
        call = _CALL_RE.match(line)
        if call is None:
            continue
        kind, rest = call.group(1), call.group(2)
        if kind == "addDependency":
            match = _ADD_DEPENDENCY_RE.match(rest)
            if match is None:
                raise ParseError("Malformed goog.addDependency call", path=path, line=lineno)
            dependencies.append(
                DeclaredDependency(
                    path=match.group(2),
                    provides=_strings(match.group(3)),
                    requires=_strings(match.group(4)),
                )
            )
            continue
        match = _NAME_ARG_RE.match(rest)
        if match is None:
            raise ParseError(f"Malformed goog.{kind} call", path=path, line=lineno)
        name = match.group(2)
        if kind == "require":
            if ignore is not None and ignore.search(name):
                continue
            if name not in requires:
                requires.append(name)
        else:
            provides.add(name)

    provides_goog = _PROVIDE_GOOG in source
    if provides_goog:
        provides.add(GOOG)
    return ParsedSource(
        provides=frozenset(provides),
        requires=tuple(requires),
        provides_goog=provides_goog,
        dependencies=tuple(dependencies),
    )


def filter_requires(
    requires: tuple[str, ...], ignore_requires: str | re.Pattern[str] | None
) -> tuple[str, ...]:
    """Apply the ignore pattern to requires declared by a manifest entry."""
    ignore = compile_ignore(ignore_requires)
    if ignore is None:
        return requires
    return tuple(name for name in requires if not ignore.search(name))
