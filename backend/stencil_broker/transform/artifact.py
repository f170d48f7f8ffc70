"""Post-process compiler output for a generic module resolver.

Two rewrites, in order:

1. Relative import specifiers become absolute, POSIX-style paths resolved
   against the artifact's directory. Only the specifier text inside each
   statement is replaced.
2. The component class is exported under a stable name. Stencil either
   inlines the class (``const X = /*@__PURE__*/ proxyCustomElement(class ...``),
   in which case the declaration gets an ``export`` keyword, or imports it
   next to a ``defineCustomElement*`` function from a shared chunk, in which
   case an ``export { ... } from '<chunk>'`` statement is appended.
"""

from __future__ import annotations

import ntpath
import os
import posixpath
import re
from enum import Enum
from types import ModuleType

from stencil_broker.core.logging import get_logger
from stencil_broker.transform.imports import ImportReference, find_static_imports

logger = get_logger(__name__)

COMPONENT_CLASS_DEFINITION = "/*@__PURE__*/ proxyCustomElement(class "

_INLINE_DECLARATION_RE = re.compile(
    r"^(?P<indent>[ \t]*)(?=(?:const|let|var)\s[^\n]*?" + re.escape(COMPONENT_CLASS_DEFINITION) + ")",
    re.MULTILINE,
)
_DEFINE_FUNCTION_RE = re.compile(r"^defineCustomElement")
_EXPORT_LIST_RE = re.compile(r"\bexport\s*\{(?P<names>[^}]*)\}")
_DRIVE_RE = re.compile(r"^[A-Za-z]:")


class ExportShape(str, Enum):
    INLINE = "inline"
    REEXPORT = "reexport"
    NONE = "none"


def _path_module(artifact_path: str) -> ModuleType:
    if os.name == "nt" or "\\" in artifact_path or _DRIVE_RE.match(artifact_path):
        return ntpath
    return posixpath


def resolve_specifier(specifier: str, artifact_path: str) -> str:
    """Resolve a relative specifier against the artifact directory, forward slashes only."""
    paths = _path_module(artifact_path)
    resolved = paths.normpath(paths.join(paths.dirname(artifact_path), specifier))
    return resolved.replace("\\", "/")


def absolutize_imports(code: str, artifact_path: str) -> str:
    pieces: list[str] = []
    cursor = 0
    for reference in find_static_imports(code):
        if not reference.is_relative:
            continue
        pieces.append(code[cursor : reference.specifier_start])
        pieces.append(resolve_specifier(reference.specifier, artifact_path))
        cursor = reference.specifier_end
    if not pieces:
        return code
    pieces.append(code[cursor:])
    return "".join(pieces)


def find_define_import(imports: list[ImportReference]) -> ImportReference | None:
    for reference in imports:
        bindings = [*reference.named_imports.keys(), *reference.named_imports.values()]
        if any(_DEFINE_FUNCTION_RE.match(name) for name in bindings):
            return reference
    return None


def exported_names(code: str) -> set[str]:
    names: set[str] = set()
    for match in _EXPORT_LIST_RE.finditer(code):
        for part in match.group("names").split(","):
            name = part.split(" as ")[-1].strip()
            if name:
                names.add(name)
    return names


class ArtifactTransformer:
    """Rewrite raw compiled output so any resolver can load it."""

    def detect_shape(self, code: str) -> ExportShape:
        if COMPONENT_CLASS_DEFINITION in code:
            return ExportShape.INLINE
        if find_define_import(find_static_imports(code)) is not None:
            return ExportShape.REEXPORT
        return ExportShape.NONE

    def transform(self, raw_code: str, artifact_path: str, expect_component: bool = False) -> str:
        code = absolutize_imports(raw_code, artifact_path)
        shape = self.detect_shape(code)
        if shape is ExportShape.INLINE:
            return self._export_inline_class(code)
        if shape is ExportShape.REEXPORT:
            return self._reexport_component(code)
        if expect_component:
            # Plain data or style modules are fine; a component artifact is not.
            logger.warning("No component definition recognised in %s; exports left as emitted", artifact_path)
        return code

    def _export_inline_class(self, code: str) -> str:
        match = _INLINE_DECLARATION_RE.search(code)
        if match is None:
            logger.warning("Found the component marker but no declaration to export")
            return code
        insert_at = match.end("indent")
        return f"{code[:insert_at]}export {code[insert_at:]}"

    def _reexport_component(self, code: str) -> str:
        reference = find_define_import(find_static_imports(code))
        if reference is None:
            return code
        component = next(
            (
                (imported, local)
                for imported, local in reference.named_imports.items()
                if not _DEFINE_FUNCTION_RE.match(local) and not _DEFINE_FUNCTION_RE.match(imported)
            ),
            None,
        )
        if component is None:
            return code
        imported, local = component
        if local in exported_names(code):
            return code
        binding = imported if imported == local else f"{imported} as {local}"
        separator = "" if code.endswith("\n") else "\n"
        return f"{code}{separator}export {{ {binding} }} from '{reference.specifier}';\n"


__all__ = [
    "COMPONENT_CLASS_DEFINITION",
    "ArtifactTransformer",
    "ExportShape",
    "absolutize_imports",
    "resolve_specifier",
]
