"""Grounding citations attached to generated text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal
from urllib.parse import urlparse

CitationKind = Literal["web", "maps"]


@dataclass(frozen=True)
class GroundingCitation:
    """A source reference (web page or map place) for generated text."""

    kind: CitationKind
    uri: str
    title: str = ""

    @property
    def host(self) -> str:
        host = urlparse(self.uri).netloc
        return host[4:] if host.startswith("www.") else host

    @property
    def label(self) -> str:
        return self.title or self.host or self.uri


def citations_from_chunks(chunks: Iterable[Any] | None) -> list[GroundingCitation]:
    """Convert grounding chunks (``web``/``maps`` entries) into citations.

    Chunks without a URI are skipped. Accepts SDK objects or plain dicts.
    """
    citations = []
    for chunk in chunks or []:
        for kind in ("web", "maps"):
            source = chunk.get(kind) if isinstance(chunk, dict) else getattr(chunk, kind, None)
            if not source:
                continue
            if isinstance(source, dict):
                uri, title = source.get("uri"), source.get("title")
            else:
                uri, title = getattr(source, "uri", None), getattr(source, "title", None)
            if uri:
                citations.append(GroundingCitation(kind=kind, uri=uri, title=title or ""))
            break
    return citations


def photos_link(citations: Iterable[GroundingCitation]) -> str | None:
    """URI of the first maps citation, used as the "real photos and map" link."""
    for citation in citations:
        if citation.kind == "maps" and citation.uri:
            return citation.uri
    return None
