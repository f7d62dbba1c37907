"""Push id generation.

Ids are 20 characters: 8 encode the millisecond timestamp, 12 are random.
The alphabet is in ASCII order, so ids sort lexicographically in creation
order. Within one millisecond the random part is incremented instead of
redrawn, which keeps that ordering for bursts of writes.
"""

import random
import threading
import time


PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

TIMESTAMP_LENGTH = 8
RANDOM_LENGTH = 12


class PushIdGenerator:
    """Generates monotonically ordered child keys."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()
        self._last_time = -1
        self._last_rand = [0] * RANDOM_LENGTH
        self._lock = threading.Lock()

    def generate(self, now: int | None = None) -> str:
        """Return the next push id for the given epoch-ms time (default: now)."""
        if now is None:
            now = int(time.time() * 1000)

        with self._lock:
            # A clock stepping backwards must not break ordering
            if now < self._last_time:
                now = self._last_time
            duplicate = now == self._last_time
            self._last_time = now

            if duplicate:
                self._increment_random()
            else:
                self._last_rand = [self._rng.randrange(64) for _ in range(RANDOM_LENGTH)]

            rand = "".join(PUSH_CHARS[r] for r in self._last_rand)

        chars = []
        for _ in range(TIMESTAMP_LENGTH):
            chars.append(PUSH_CHARS[now % 64])
            now //= 64
        return "".join(reversed(chars)) + rand

    def _increment_random(self) -> None:
        i = RANDOM_LENGTH - 1
        while i >= 0 and self._last_rand[i] == 63:
            self._last_rand[i] = 0
            i -= 1
        if i >= 0:
            self._last_rand[i] += 1


_default_generator = PushIdGenerator()


def generate_push_id(now: int | None = None) -> str:
    """Generate a push id from the process-wide generator."""
    return _default_generator.generate(now)
