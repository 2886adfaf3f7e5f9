"""
Identity allocation for graph entities.

One allocator per session, injected wherever ids are minted.
"""
import itertools
from collections import defaultdict
from typing import DefaultDict, Iterator


class IdentityAllocator:
    """Per-kind monotonically increasing counters; values are never reused."""

    def __init__(self) -> None:
        self._counters: DefaultDict[str, Iterator[int]] = defaultdict(
            lambda: itertools.count(1)
        )

    def next_value(self, kind: str) -> int:
        return next(self._counters[kind])

    def next_id(self, kind: str) -> str:
        """Return ``"<kind>-<n>"``."""
        return f"{kind}-{self.next_value(kind)}"
