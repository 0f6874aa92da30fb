"""
Randomness capability for DKG secrets and signing nonces.

A single source is installed per process (see ``api.initialize``) and handed
to the coordinators, which pass it down to the primitives. Draws are taken
under a lock, so concurrent ceremonies sharing one source never observe the
same output.
"""

import logging
import random
import secrets
import threading
from typing import Optional

from .constants import Q

logger = logging.getLogger(__name__)


class RandomSource:
    """Base class for a source of 256-bit randomness."""

    def __init__(self):
        self._lock = threading.Lock()

    def _randbits(self, bits: int) -> int:
        raise NotImplementedError

    def randbits(self, bits: int) -> int:
        with self._lock:
            return self._randbits(bits)

    def token_bytes(self, length: int = 32) -> bytes:
        return self.randbits(8 * length).to_bytes(length, "big")

    def scalar(self) -> int:
        """Draw a uniformly random non-zero scalar modulo Q."""
        while True:
            value = self.randbits(256) % Q
            if value:
                return value


class SystemRandomSource(RandomSource):
    """Operating-system CSPRNG, the default for every process."""

    def _randbits(self, bits: int) -> int:
        return secrets.randbits(bits)


class SeededRandomSource(RandomSource):
    """
    Reproducible source for tests and demonstrations. Never use it for real
    keys: anyone who knows the seed can recompute every secret and nonce.
    """

    def __init__(self, seed: Optional[int] = None):
        super().__init__()
        self.seed = seed
        self._random = random.Random(seed)
        logger.warning("Using a seeded random source; do not use for real keys")

    def _randbits(self, bits: int) -> int:
        return self._random.getrandbits(bits)
