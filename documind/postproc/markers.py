"""Metadata header written at the top of every AI document."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

_HEADER_PATTERN = re.compile(
    r"\A<!-- documind:ai manifest=(?P<manifest>\S+) roles=(?P<roles>\S*) tokens=(?P<tokens>\d+) -->\n?"
)


@dataclass(frozen=True)
class AiDocumentHeader:
    """Identifies the manifest that produced an AI document and the token count of the whole file."""

    manifest: str
    roles: Tuple[str, ...]
    tokens: int

    def render(self) -> str:
        manifest = re.sub(r"\s+", "-", self.manifest.strip()) or "unknown"
        roles = ",".join(self.roles)
        return f"<!-- documind:ai manifest={manifest} roles={roles} tokens={self.tokens} -->"


def with_header(body: str, *, manifest: str, roles: Sequence[str], tokens: int) -> str:
    header = AiDocumentHeader(manifest=manifest, roles=tuple(roles), tokens=tokens)
    return f"{header.render()}\n{body}"


def parse_header(markdown: str) -> Optional[AiDocumentHeader]:
    match = _HEADER_PATTERN.match(markdown)
    if not match:
        return None
    roles = tuple(role for role in match.group("roles").split(",") if role)
    return AiDocumentHeader(
        manifest=match.group("manifest"),
        roles=roles,
        tokens=int(match.group("tokens")),
    )


def strip_header(markdown: str) -> str:
    return _HEADER_PATTERN.sub("", markdown, count=1)


__all__ = ["AiDocumentHeader", "parse_header", "strip_header", "with_header"]
