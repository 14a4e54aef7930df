from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .page import cursor_token

CursorStatus = Literal["advance", "exhausted", "stalled"]


@dataclass
class CursorTracker:
    """
    Holds the cursor for the next request and classifies each returned cursor.

    Only an immediate repeat counts as a stall; a cycle through several
    distinct cursors is not detected.
    """

    current: str = ""
    pages: int = 0

    def check(self, next_cursor: str) -> CursorStatus:
        value = cursor_token(next_cursor)
        if value is None:
            return "exhausted"
        if value == self.current:
            return "stalled"
        return "advance"

    def advance(self, next_cursor: str) -> None:
        self.current = cursor_token(next_cursor) or ""
        self.pages += 1
