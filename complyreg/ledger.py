"""
complyreg Ledger

Composes the five registries on one store:

    Institution -> Requirement assignment -> Data submission
        -> Report generation -> Timeliness verification

Later registries receive earlier ones as read-only collaborators; no
registry ever writes another registry's key space. The ledger also stands in
for the host: it owns the height oracle and builds the CallContext passed to
every mutation.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from . import config
from .config import RegistryPolicy
from .context import CallContext, HeightOracle, ManualHeightOracle
from .institutions import INSTITUTIONS, InstitutionRegistry
from .journal import Journal
from .nonces import NonceStore
from .reports import REPORT_METADATA, REPORTS, ReportRegistry
from .requirements import ASSIGNMENTS, REQUIREMENTS, RequirementRegistry
from .storage import KeyValueStore, SqliteStore
from .submissions import SUBMISSION_METADATA, SUBMISSIONS, SubmissionRegistry
from .verifications import VERIFICATIONS, VerificationRegistry

logger = logging.getLogger(__name__)

HOST_NAMESPACE = "host"
HEIGHT_KEY = "block_height"


class StoredHeightOracle(HeightOracle):
    """
    Height counter persisted in the store.

    Every mutating call is treated as its own block: next_for_call()
    advances the counter by one and returns the new height.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    def current(self) -> int:
        record = self._store.get(HOST_NAMESPACE, HEIGHT_KEY)
        return record["height"] if record else 0

    def next_for_call(self) -> int:
        with self._store.transaction():
            height = self.current() + 1
            self._store.put(HOST_NAMESPACE, HEIGHT_KEY, {"height": height})
        return height


class ComplianceLedger:
    """The five registries wired together over a shared store."""

    def __init__(
        self,
        store: KeyValueStore,
        admin: Optional[str],
        height: Optional[HeightOracle] = None,
        policy: Optional[RegistryPolicy] = None
    ):
        self.store = store
        self.height = height or ManualHeightOracle()
        self.policy = policy or RegistryPolicy()
        self.journal = Journal(store)
        self.nonces = NonceStore(store)
        self._call_lock = threading.Lock()

        self.institutions = InstitutionRegistry(store, self.journal, self.policy)
        self.requirements = RequirementRegistry(store, self.institutions, self.journal)
        self.submissions = SubmissionRegistry(
            store, self.institutions, self.requirements, self.journal
        )
        self.reports = ReportRegistry(
            store, self.institutions, self.requirements, self.submissions,
            self.journal, self.policy
        )
        self.verifications = VerificationRegistry(
            store, self.institutions, self.requirements, self.reports, self.journal
        )

        # None opens an existing store without seeding admins
        if admin is not None:
            for registry in self.registries().values():
                registry.admin.initialize(admin)

    @classmethod
    def from_config(cls) -> "ComplianceLedger":
        """Ledger on the configured SQLite database with a stored height counter."""
        if not config.INITIAL_ADMIN:
            raise ValueError("COMPLYREG_ADMIN must be set")
        store = SqliteStore(config.DB_PATH)
        logger.info("Opened registry store at %s", config.DB_PATH)
        return cls(
            store,
            admin=config.INITIAL_ADMIN,
            height=StoredHeightOracle(store),
            policy=RegistryPolicy.from_env(),
        )

    def registries(self) -> Dict[str, Any]:
        return {
            self.institutions.name: self.institutions,
            self.requirements.name: self.requirements,
            self.submissions.name: self.submissions,
            self.reports.name: self.reports,
            self.verifications.name: self.verifications,
        }

    def context(self, caller: str) -> CallContext:
        """Context for one mutating call by `caller`."""
        return CallContext(caller=caller, block_height=self.height.next_for_call())

    def call(self, caller: str, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run one mutating call by `caller` at the next height.

        Calls are serialised from height reservation to commit, so journal
        entries land in height order. A rejected call still consumes its
        height.
        """
        with self._call_lock:
            ctx = self.context(caller)
            logger.debug(
                "Dispatching %s", getattr(operation, "__qualname__", operation),
                extra={"caller": caller, "block_height": ctx.block_height},
            )
            return operation(ctx, *args, **kwargs)

    def snapshot(self) -> Dict[str, Any]:
        """Export every registry's records, the admins, and the journal head."""
        namespaces = [
            INSTITUTIONS, REQUIREMENTS, ASSIGNMENTS, SUBMISSIONS,
            SUBMISSION_METADATA, REPORTS, REPORT_METADATA, VERIFICATIONS,
        ]
        return {
            "block_height": self.height.current(),
            "admins": {name: r.get_admin() for name, r in self.registries().items()},
            "records": {
                ns: [value for _, value in self.store.items(ns)]
                for ns in namespaces
            },
            "journal_head": self.journal.head(),
        }
