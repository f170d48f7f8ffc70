"""Map a compilation unit to the path its compiled artifact lands on."""

from __future__ import annotations

import os
import re

_COMPONENT_BLOCK_RE = re.compile(r"@Component\s*\(\s*\{(?P<body>.*?)\}\s*\)", re.DOTALL)
_TAG_FIELD_RE = re.compile(r"""\btag\s*:\s*(?P<quote>['"`])(?P<tag>.*?)(?P=quote)""", re.DOTALL)


class ArtifactLocator:
    """Resolve component tags and artifact paths without touching the disk.

    Tag extraction is plain text scanning of the ``@Component({...})``
    decorator; swapping in a real parser only requires replacing
    :meth:`resolve_tag`.
    """

    def __init__(self, extension: str = ".js") -> None:
        self.extension = extension

    def resolve_tag(self, source_text: str) -> str | None:
        block = _COMPONENT_BLOCK_RE.search(source_text)
        if block is None:
            return None
        field = _TAG_FIELD_RE.search(block.group("body"))
        if field is None:
            return None
        return field.group("tag").strip() or None

    def artifact_path_for(self, output_dir: str | os.PathLike[str], tag: str) -> str:
        return os.path.join(os.fspath(output_dir), f"{tag}{self.extension}")


__all__ = ["ArtifactLocator"]
