"""
Per-registry admin role.

Each registry keeps exactly one admin identity in its own key space.
Gated operations call require() before anything else; the identity only
changes through transfer().
"""

from typing import Optional

from .context import CallContext
from .errors import Unauthorized
from .storage import KeyValueStore
from .validation import validate_identifier

ADMIN_NAMESPACE = "admin"


class AdminRole:
    """Admin identity for one registry."""

    def __init__(self, store: KeyValueStore, registry: str):
        self._store = store
        self._registry = registry

    def initialize(self, admin: str) -> None:
        """Set the first admin on a fresh store. Existing admins are kept."""
        validate_identifier(admin, "admin")
        with self._store.transaction():
            if not self._store.exists(ADMIN_NAMESPACE, self._registry):
                self._store.put(ADMIN_NAMESPACE, self._registry, {"admin": admin})

    def current(self) -> Optional[str]:
        record = self._store.get(ADMIN_NAMESPACE, self._registry)
        return record["admin"] if record else None

    def is_admin(self, principal: str) -> bool:
        return principal == self.current()

    def require(self, ctx: CallContext) -> None:
        if not self.is_admin(ctx.caller):
            raise Unauthorized(
                f"caller is not the {self._registry} admin",
                caller=ctx.caller,
            )

    def transfer(self, ctx: CallContext, new_admin: str) -> str:
        """Replace the admin identity. Must run inside the caller's transaction.

        Returns the validated new admin.
        """
        self.require(ctx)
        new_admin = validate_identifier(new_admin, "new_admin")
        self._store.put(ADMIN_NAMESPACE, self._registry, {"admin": new_admin})
        return new_admin
