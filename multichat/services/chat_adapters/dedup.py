"""Bounded window of recently delivered message ids."""

from collections import OrderedDict
from typing import Hashable, Iterator, Optional


class DedupWindow:
    """Ordered set of recently seen ids with FIFO eviction.

    Eviction follows insertion order only; seeing an id again does not move it.
    """

    def __init__(self, capacity: int = 500):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._ids: "OrderedDict[Hashable, None]" = OrderedDict()

    def add(self, message_id: Optional[Hashable]) -> bool:
        """Record an id.

        Returns:
            bool: True if the id was not in the window (deliver it),
            False if it was already seen
        """
        if message_id is None:
            return True
        if message_id in self._ids:
            return False

        self._ids[message_id] = None
        if len(self._ids) > self.capacity:
            self._ids.popitem(last=False)
        return True

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._ids)

    def clear(self) -> None:
        self._ids.clear()
