"""Debugger session flags consulted by the highlighters and search."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SessionFlags:
    """Transient debugger states during which output is left uncoloured.

    misc_prompt: the debugger is asking a question (``(y or n)``, pagination).
    listing_sources: the front end is collecting ``info sources`` output.
    """

    misc_prompt: bool = False
    listing_sources: bool = False

    @property
    def suppress_highlighting(self) -> bool:
        return self.misc_prompt or self.listing_sources
