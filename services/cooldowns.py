from typing import Callable, Dict, Optional, Tuple

import time


DEFAULT_COOLDOWN_MS = 3000
PRUNE_EVERY = 256


class CooldownTracker:
    """Per-command, per-user cooldowns with lazy expiry.

    Entries are never removed by timers. A stale entry is treated as absent
    on the next lookup and dropped then; every ``PRUNE_EVERY`` hits all stale
    entries are swept.
    """

    def __init__(self, window_ms: int = DEFAULT_COOLDOWN_MS, clock: Callable[[], float] = time.monotonic) -> None:
        self.window_ms = window_ms
        self._clock = clock
        self._expiries: Dict[Tuple[str, int], float] = {}
        self._hits = 0

    def hit(self, command: str, user_id: int) -> Optional[float]:
        """Return remaining seconds if on cooldown, otherwise start a new window."""
        self._hits += 1
        if self._hits % PRUNE_EVERY == 0:
            self.prune()
        key = (command, user_id)
        now = self._clock()
        expiry = self._expiries.get(key)
        if expiry is not None:
            remaining = expiry - now
            if remaining > 0:
                return remaining
            del self._expiries[key]
        self._expiries[key] = now + self.window_ms / 1000
        return None

    def remaining(self, command: str, user_id: int) -> float:
        expiry = self._expiries.get((command, user_id))
        if expiry is None:
            return 0.0
        return max(expiry - self._clock(), 0.0)

    def reset(self, command: str, user_id: int) -> None:
        self._expiries.pop((command, user_id), None)

    def prune(self) -> int:
        now = self._clock()
        dead = [key for key, expiry in self._expiries.items() if expiry <= now]
        for key in dead:
            del self._expiries[key]
        return len(dead)

    def __len__(self) -> int:
        return len(self._expiries)
