"""Bounded FIFO store between two stations."""

from collections import deque
from typing import Deque, List, Optional, Sequence

from leanline.models import BufferSnapshot, Piece


class Buffer:
    """Finite-capacity FIFO buffer.

    Batches enter and leave atomically: a push either stores every piece of
    the batch or none of them. A buffer with capacity 0 stores nothing; work
    crosses it through a direct machine-to-machine hand-off done by the engine.
    """

    def __init__(self, buffer_id: str, capacity: int):
        self.id = buffer_id
        self.capacity = capacity
        self.pieces: Deque[Piece] = deque()
        self.cumulative_fill = 0

    def __len__(self) -> int:
        return len(self.pieces)

    @property
    def is_bufferless(self) -> bool:
        return self.capacity == 0

    def try_push(self, batch: Sequence[Piece]) -> bool:
        """Append a whole batch if it fits, preserving arrival order."""
        if self.is_bufferless or len(self.pieces) + len(batch) > self.capacity:
            return False
        self.pieces.extend(batch)
        return True

    def try_pop(self, n: int) -> Optional[List[Piece]]:
        """Remove the ``n`` oldest pieces, or return None if fewer are stored."""
        if n < 1 or len(self.pieces) < n:
            return None
        return [self.pieces.popleft() for _ in range(n)]

    def record_fill(self) -> None:
        """Accumulate current occupancy (called once per tick)."""
        self.cumulative_fill += len(self.pieces)

    def average_utilization(self, elapsed: int) -> float:
        """Mean occupancy over ``elapsed`` ticks as a percentage of capacity."""
        if self.capacity <= 0 or elapsed <= 0:
            return 0.0
        return (self.cumulative_fill / elapsed) / self.capacity * 100.0

    def clear(self) -> None:
        self.pieces.clear()
        self.cumulative_fill = 0

    def snapshot(self) -> BufferSnapshot:
        return BufferSnapshot(
            id=self.id,
            capacity=self.capacity,
            pieces=tuple(p.uid for p in self.pieces),
            cumulative_fill=self.cumulative_fill,
        )
