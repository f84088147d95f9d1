"""Piece identity, creation time and location bookkeeping."""

from typing import Dict, Iterable, Optional, Tuple

from leanline.models import Piece


class PieceTracker:
    """Maps every piece inside the line to its creation time and location.

    Pieces are minted at the line entry and forgotten once they exit the
    last station; lead time is computed on exit.
    """

    def __init__(self):
        self.piece_counter = 0
        self._created: Dict[str, int] = {}
        self._locations: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._created)

    def __contains__(self, uid: str) -> bool:
        return uid in self._created

    def reset(self) -> None:
        self.piece_counter = 0
        self._created.clear()
        self._locations.clear()

    def mint(self, now: int, location: str) -> Piece:
        """Create a new piece at the line entry."""
        self.piece_counter += 1
        piece = Piece(uid=f"P{self.piece_counter}", created_at=now)
        self._created[piece.uid] = now
        self._locations[piece.uid] = location
        return piece

    def move(self, pieces: Iterable[Piece], location: str) -> None:
        for piece in pieces:
            self._locations[piece.uid] = location

    def complete(self, piece: Piece, now: int) -> int:
        """Stop tracking an exiting piece and return its lead time."""
        created = self._created.pop(piece.uid)
        self._locations.pop(piece.uid, None)
        return now - created

    def creation_time(self, uid: str) -> Optional[int]:
        return self._created.get(uid)

    def location(self, uid: str) -> Optional[str]:
        return self._locations.get(uid)

    def locations(self) -> Tuple[Tuple[str, str], ...]:
        """(piece id, location id) pairs in creation order."""
        return tuple(self._locations.items())
