"""Tolerant parser for generated nearby-place listings.

The discovery prompt asks for one place per line as ``NAME | TYPE | DISTANCE``
but generated text does not always comply. The parser accepts a few
plausible shapes and drops everything else instead of failing the flow.

Rules, in order:

* a line is kept only if it is longer than ``MIN_LINE_LENGTH`` characters
  and contains at least one of ``DELIMITERS``;
* the first delimiter present in ``DELIMITERS`` (priority order) splits the
  line into at most three fields: name, category, distance;
* list markers (digits, dots, dashes, asterisks, whitespace) are stripped
  from the start of the name only;
* an empty category becomes ``DEFAULT_CATEGORY``; the distance is kept as-is;
* candidates whose name is not longer than ``MIN_NAME_LENGTH`` are dropped.

No deduplication happens here; that belongs to the session.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DELIMITERS: tuple[str, ...] = ("|", " - ", ":")
DEFAULT_CATEGORY = "Point of Interest"
MIN_LINE_LENGTH = 5
MIN_NAME_LENGTH = 2
MAX_FIELDS = 3

_LIST_MARKER = re.compile(r"^[\d\s.\-*]+")


@dataclass(frozen=True)
class CandidatePlace:
    """A nearby point of interest parsed from one line of text."""

    name: str
    category: str = DEFAULT_CATEGORY
    distance_label: str = ""

    @property
    def normalized_name(self) -> str:
        """Identity used for deduplication."""
        return normalize_name(self.name)


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def _pick_delimiter(line: str) -> str | None:
    for delimiter in DELIMITERS:
        if delimiter in line:
            return delimiter
    return None


def parse_line(line: str) -> CandidatePlace | None:
    """Parse a single line, returning None when it is noise."""
    line = line.strip()
    if len(line) <= MIN_LINE_LENGTH:
        return None

    delimiter = _pick_delimiter(line)
    if delimiter is None:
        return None

    fields = line.split(delimiter)[:MAX_FIELDS]
    fields += [""] * (MAX_FIELDS - len(fields))
    raw_name, raw_category, raw_distance = fields

    name = _LIST_MARKER.sub("", raw_name).strip()
    if len(name) <= MIN_NAME_LENGTH:
        return None

    return CandidatePlace(
        name=name,
        category=raw_category.strip() or DEFAULT_CATEGORY,
        distance_label=raw_distance.strip(),
    )


def parse_places(raw_text: str | None) -> list[CandidatePlace]:
    """Parse generated text into candidate places, in line order."""
    if not raw_text:
        return []

    places = []
    for line in raw_text.splitlines():
        place = parse_line(line)
        if place is not None:
            places.append(place)
    return places
