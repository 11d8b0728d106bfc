"""
Single-use request nonces.

Every signed service request carries a nonce. A nonce is accepted once and
remembered until its expiry; expired nonces are purged on each insert, so
the namespace only ever holds nonces that could still be replayed.
"""

from .storage import KeyValueStore

NONCE_NAMESPACE = "nonces"


class NonceStore:
    """Replay ledger kept in its own store namespace."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def insert(self, nonce: str, expires_at: int, now: int) -> bool:
        """
        Record a nonce as used.

        Returns:
            True if the nonce was fresh, False if it was already used and
            has not yet expired
        """
        with self._store.transaction():
            for key, record in self._store.items(NONCE_NAMESPACE):
                if record["expires_at"] < now:
                    self._store.delete(NONCE_NAMESPACE, key)
            if self._store.exists(NONCE_NAMESPACE, nonce):
                return False
            self._store.put(NONCE_NAMESPACE, nonce, {"expires_at": expires_at})
        return True

    def active(self) -> int:
        """Number of nonces currently remembered."""
        return len(self._store.items(NONCE_NAMESPACE))
