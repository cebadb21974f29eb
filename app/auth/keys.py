import asyncio
import logging

import bcrypt

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of a key
MAX_KEY_BYTES = 72


def hash_key(key: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a caller key with bcrypt, for use as KEY_HASH."""
    encoded = key.encode("utf-8")
    if len(encoded) > MAX_KEY_BYTES:
        raise ValueError(f"Key must not be longer than {MAX_KEY_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


class KeyVerifier:
    """Checks caller keys against the configured bcrypt hash."""

    def __init__(self, key_hash: str):
        self._key_hash = key_hash.encode("utf-8")

    def check(self, key: str) -> bool:
        encoded = key.encode("utf-8")
        # Older bcrypt releases silently truncate instead of failing
        if len(encoded) > MAX_KEY_BYTES:
            return False
        return bcrypt.checkpw(encoded, self._key_hash)

    async def verify(self, key: str) -> bool:
        # bcrypt is slow on purpose, keep it off the event loop
        return await asyncio.get_running_loop().run_in_executor(None, self.check, key)
