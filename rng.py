from typing import List, Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit integer multiply, wrapping like C unsigned arithmetic."""
    return (a * b) & _MASK32


class SeededRandom:
    """Mulberry32 pseudo-random generator.

    Fast and non-cryptographic. Two instances built from the same 32-bit seed
    produce the same sequence, which is what makes a generation run
    reproducible.
    """

    def __init__(self, seed: int):
        self.seed = seed & _MASK32
        self._state = self.seed

    def next(self) -> float:
        """Return a float in [0, 1)."""
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296

    def next_int(self, low: int, high: int) -> int:
        """Return an integer N such that low <= N <= high."""
        return int(self.next() * (high - low + 1)) + low

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Return a Fisher-Yates shuffled copy of items."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            result[i], result[j] = result[j], result[i]
        return result

    def __repr__(self) -> str:
        return f"SeededRandom(seed={self.seed})"
