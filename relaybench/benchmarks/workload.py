"""Seeded random text and edits for the scenarios."""

from __future__ import annotations

import random
import string

from relaybench.core.update import EditOp

WORD_CHARS = string.ascii_lowercase


class Workload:
    """Random words, insertions and pauses from one seeded generator.

    The same seed gives the same initial text and edit sequence, so two
    runs of a scenario replay identical work.

    Args:
        seed: RNG seed; None seeds from the OS.
    """

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self.rng = random.Random(seed)

    def word(self, length: int) -> str:
        return "".join(self.rng.choices(WORD_CHARS, k=length))

    def char(self) -> str:
        return self.rng.choice(WORD_CHARS)

    def insertions(
        self,
        count: int,
        initial_length: int,
        min_len: int = 1,
        max_len: int = 9,
    ) -> list[EditOp]:
        """``count`` insertions at uniform positions of the growing text.

        Each position is valid for the text as it is after all earlier
        edits of the list were applied in order.
        """
        ops = []
        length = initial_length
        for _ in range(count):
            text = self.word(self.rng.randint(min_len, max_len))
            ops.append(EditOp(pos=self.rng.randint(0, length), insert=text))
            length += len(text)
        return ops

    def delay(self, bounds: tuple[float, float]) -> float:
        low, high = bounds
        return self.rng.uniform(low, high)
