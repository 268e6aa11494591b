"""
Credential pool: ordered Gemini API keys with a shared rotation cursor.

One pool lives for the whole process and is shared by every concurrent call.
The cursor is only read or moved under the pool's lock.
"""

import logging
import threading
from typing import Optional, Sequence

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class CredentialPool:
    """
    Round-robin pool of access credentials.

    Usage:
        pool = CredentialPool(["key-a", "key-b"])
        key = pool.current()
        new_index, wrapped = pool.rotate()
    """

    def __init__(self, credentials: Sequence[str]):
        keys = tuple(credentials)
        if not keys:
            raise ConfigurationError(
                "No valid API keys found. Set GEMINI_API_KEY or GEMINI_API_KEYS."
            )
        self._credentials = keys
        self._index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "CredentialPool":
        keys = settings.credentials()
        logger.info("Loaded %d Gemini API key(s)", len(keys))
        return cls(keys)

    @property
    def size(self) -> int:
        return len(self._credentials)

    @property
    def index(self) -> int:
        with self._lock:
            return self._index

    def current(self) -> str:
        with self._lock:
            return self._credentials[self._index]

    def snapshot(self) -> tuple[int, str]:
        """Cursor and credential read together, so the pair is consistent."""
        with self._lock:
            return self._index, self._credentials[self._index]

    def rotate(self, from_index: Optional[int] = None) -> tuple[int, bool]:
        """
        Advance the cursor by one, modulo the pool size.

        Returns (new_index, wrapped); wrapped is True when the cursor lands
        back on 0, i.e. a full cycle through the keys has completed.

        If from_index is given and the cursor has already moved off it (a
        concurrent caller rotated first), the cursor is left where it is and
        (cursor, False) is returned, so one exhausted key never causes two
        advances.
        """
        with self._lock:
            if from_index is not None and from_index != self._index:
                return self._index, False
            self._index = (self._index + 1) % len(self._credentials)
            return self._index, self._index == 0
