from __future__ import annotations

import re
from typing import Protocol

DEFAULT_REASON_MARKER = "--- RAZLOG OTKAZIVANJA ---"


class ReasonParser(Protocol):
    def parse(self, note: str | None) -> str | None: ...


class MarkerReasonParser:
    """Extracts the free-text block that follows a header line in a visit note.

    The block ends at the first blank line or at the end of the note. Matching
    of the header ignores case and tolerates extra whitespace between its words.
    """

    def __init__(self, marker: str = DEFAULT_REASON_MARKER) -> None:
        header = r"\s*".join(re.escape(word) for word in marker.split())
        self.pattern = re.compile(
            header + r"[ \t]*\r?\n(?P<reason>.*?)(?:\r?\n[ \t]*\r?\n|\Z)",
            re.IGNORECASE | re.DOTALL,
        )

    def parse(self, note: str | None) -> str | None:
        if not note:
            return None
        match = self.pattern.search(note)
        if match is None:
            return None
        reason = match.group("reason").strip()
        return reason or None
