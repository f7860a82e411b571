from __future__ import annotations

import random

from .constants import SUB_NBR_LENGTH, UNIQUE_ID_DOMAIN


def generate_sub_nbr(s_id: int) -> str:
    return f"{s_id:0{SUB_NBR_LENGTH}d}"


class RandomContext:
    """
    seeded random source for one generator partition or one in-flight transaction.

    not safe to share between concurrent callers.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self.rng = random.Random(seed)

    def uniform_random(self, low: int, high: int) -> int:
        return self.rng.randint(low, high)

    def uniform_int(self, bits: int) -> int:
        """draws from the full domain of a signed integer of the given width."""
        return self.rng.randint(-(1 << (bits - 1)), (1 << (bits - 1)) - 1)

    def random_string(self, min_len: int, max_len: int, lo: str = "A", hi: str = "Z") -> str:
        length = self.uniform_random(min_len, max_len)
        return "".join(chr(self.rng.randint(ord(lo), ord(hi))) for _ in range(length))

    def unique_random_ids(self, low: int, high: int, domain: int = UNIQUE_ID_DOMAIN) -> list[int]:
        count = self.uniform_random(low, high) if low < high else low
        if count > domain:
            raise ValueError(f"cannot draw {count} unique ids from [1, {domain}]")
        return self.rng.sample(range(1, domain + 1), count)
