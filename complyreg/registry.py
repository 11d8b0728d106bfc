"""
Shared machinery for the five registries.

A Registry owns a name, its admin role, and a handle on the journal. Public
mutations are wrapped with @mutation, which runs the call in one store
transaction and writes the audit log entry for its outcome.
"""

from functools import wraps
from typing import Any, Callable, Dict, Optional

from .admin import AdminRole
from .context import CallContext
from .errors import RegistryError
from .journal import Journal
from .logging_config import audit_log
from .storage import KeyValueStore


def mutation(operation: str) -> Callable:
    """
    Run a registry method as one atomic call.

    Any exception rolls the store back to its state before the call;
    RegistryError rejections are audit-logged and re-raised unchanged.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self: "Registry", ctx: CallContext, *args: Any, **kwargs: Any) -> Any:
            try:
                with self._store.transaction():
                    result = func(self, ctx, *args, **kwargs)
            except RegistryError as exc:
                audit_log.mutation_rejected(
                    self.name, operation, ctx.caller, ctx.block_height,
                    exc.code.value, exc.message
                )
                raise
            audit_log.mutation_committed(
                self.name, operation, ctx.caller, ctx.block_height, result
            )
            return result
        return wrapper
    return decorator


class Registry:
    """Base class for keyed registries sharing one store."""

    name = "registry"

    def __init__(self, store: KeyValueStore, journal: Optional[Journal] = None):
        self._store = store
        self._journal = journal or Journal(store)
        self.admin = AdminRole(store, self.name)

    def _record(self, ctx: CallContext, operation: str, subject: str, record: Dict[str, Any]) -> None:
        self._journal.append(ctx, self.name, operation, subject, record)

    def transfer_admin(self, ctx: CallContext, new_admin: str) -> bool:
        """Admin-only. Hand this registry's admin role to new_admin."""
        new_admin = self._transfer_admin(ctx, new_admin)
        # The outgoing admin is always the caller; require() guarantees it
        audit_log.admin_transferred(self.name, ctx.caller, new_admin, ctx.block_height)
        return True

    @mutation("transfer_admin")
    def _transfer_admin(self, ctx: CallContext, new_admin: str) -> str:
        new_admin = self.admin.transfer(ctx, new_admin)
        self._record(ctx, "transfer_admin", self.name, {"admin": new_admin})
        return new_admin

    def get_admin(self) -> Optional[str]:
        return self.admin.current()
