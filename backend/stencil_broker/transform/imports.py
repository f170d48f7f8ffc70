"""Static ``import`` statement scanning for compiled ES modules."""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, field

_STATIC_IMPORT_RE = re.compile(
    r"""(?:^|(?<=[\s;}]))import\s*"""
    r"""(?:(?P<clause>[\w\t\n\r $*,{}@.]+?)\s*from\s*)?"""
    r"""(?P<quote>["'])(?P<specifier>[^"'\n]+)(?P=quote)[ \t]*;?""",
    re.MULTILINE,
)
# Comments and string or template literals; imports inside them are not statements.
_NON_CODE_RE = re.compile(
    r"""\/\/[^\n]*|\/\*.*?\*\/"""
    r"""|"(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'|`(?:\\.|[^`\\])*`""",
    re.DOTALL,
)
_NAMED_RE = re.compile(r"\{(?P<names>[^}]*)\}")
_NAMESPACE_RE = re.compile(r"\*\s*as\s+(?P<name>[\w$]+)")
_ALIAS_RE = re.compile(r"\s+as\s+")
_RELATIVE_PREFIXES = ("./", "../")


@dataclass(slots=True)
class ImportReference:
    """A static import found in compiled output.

    ``start``/``end`` delimit the whole statement and ``specifier_start``/
    ``specifier_end`` the module path inside it, both as offsets into the
    scanned code.
    """

    code: str
    specifier: str
    start: int
    end: int
    specifier_start: int
    specifier_end: int
    clause: str | None = None
    default_import: str | None = None
    namespace_import: str | None = None
    # imported name -> local binding
    named_imports: dict[str, str] = field(default_factory=dict)

    @property
    def is_relative(self) -> bool:
        return self.specifier.startswith(_RELATIVE_PREFIXES)


def find_static_imports(code: str) -> list[ImportReference]:
    references: list[ImportReference] = []
    spans = [match.span() for match in _NON_CODE_RE.finditer(code)]
    starts = [start for start, _ in spans]
    for match in _STATIC_IMPORT_RE.finditer(code):
        index = bisect.bisect_right(starts, match.start()) - 1
        if index >= 0 and match.start() < spans[index][1]:
            continue
        clause = match.group("clause")
        reference = ImportReference(
            code=match.group(0),
            specifier=match.group("specifier").strip(),
            start=match.start(),
            end=match.end(),
            specifier_start=match.start("specifier"),
            specifier_end=match.end("specifier"),
            clause=clause.strip() if clause else None,
        )
        _parse_clause(reference)
        references.append(reference)
    return references


def _parse_clause(reference: ImportReference) -> None:
    clause = reference.clause
    if not clause:
        return
    named = _NAMED_RE.search(clause)
    if named:
        for part in named.group("names").split(","):
            part = part.strip()
            if not part:
                continue
            imported, *alias = _ALIAS_RE.split(part, maxsplit=1)
            reference.named_imports[imported] = alias[0] if alias else imported
    namespace = _NAMESPACE_RE.search(clause)
    if namespace:
        reference.namespace_import = namespace.group("name")
    head = _NAMED_RE.sub("", clause)
    head = _NAMESPACE_RE.sub("", head)
    default = head.strip().strip(",").strip()
    if default:
        reference.default_import = default


__all__ = ["ImportReference", "find_static_imports"]
