"""
Track selection: which catalog index comes next.

Shuffle keeps no history. "Previous" under shuffle draws a fresh random
track exactly like "next" does; it does not walk back through what played.
"""

import random
from typing import Iterable, Optional

from .models import Direction, PlayerState


def next_index_linear(current: int, count: int) -> int:
    return (current + 1) % count


def prev_index_linear(current: int, count: int) -> int:
    return (current - 1 + count) % count


def next_index_shuffled(current: int, count: int, rng: Optional[random.Random] = None,
                        exclude: Iterable[int] = ()) -> int:
    """
    Uniformly pick any index except the current one and those in exclude.
    Falls back to current when nothing else is left.
    """
    skipped = sorted({current, *exclude} & set(range(count)))
    if count - len(skipped) < 1:
        return current
    rng = rng or random
    pick = rng.randrange(count - len(skipped))
    # Step over each skipped index so the remaining ones stay equally likely
    for index in skipped:
        if pick >= index:
            pick += 1
    return pick


class TrackSelector:
    """
    Resolves transition targets under the linear or shuffle policy.

    Args:
        count: Number of tracks in the catalog
        rng: Random source (pass a seeded random.Random for repeatable shuffles)
    """

    def __init__(self, count: int, rng: Optional[random.Random] = None):
        if count < 1:
            raise ValueError("Catalog is empty")
        self.count = count
        self.rng = rng or random.Random()

    def resolve_next(self, state: PlayerState, direction: Direction,
                     origin: Optional[int] = None) -> int:
        """
        Args:
            state: Supplies the current index and the shuffle flag
            direction: Direction.NEXT or Direction.PREVIOUS
            origin: A failed target to move past (linear: step from it,
                shuffle: exclude it along with the current index)

        Returns:
            Target catalog index
        """
        if state.shuffle_enabled:
            exclude = () if origin is None else (origin,)
            return next_index_shuffled(state.current_index, self.count, self.rng, exclude)
        current = state.current_index if origin is None else origin
        if direction == Direction.NEXT:
            return next_index_linear(current, self.count)
        return prev_index_linear(current, self.count)
