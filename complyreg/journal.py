"""
complyreg Mutation Journal

Append-only, hash-chained record of every committed registry mutation.

Entries are written inside the mutating call's transaction, so a rejected
call leaves no entry and a committed call always has one. Each entry binds
the hash of the record that was written and the hash of the previous entry:

    entry_hash = SHA-256(prev_entry_hash || payload_hash(entry body))
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .context import CallContext
from .hashing import chain_entry_hash, payload_hash
from .storage import KeyValueStore

JOURNAL_NAMESPACE = "journal"
HEAD_NAMESPACE = "journal_head"
HEAD_KEY = "head"


@dataclass
class JournalEntry:
    seq: int
    registry: str
    operation: str
    subject: str
    caller: str
    block_height: int
    record_hash: str
    prev_entry_hash: Optional[str]
    entry_hash: str

    def body(self) -> Dict[str, Any]:
        """The hashed portion of the entry."""
        return {
            "seq": self.seq,
            "registry": self.registry,
            "operation": self.operation,
            "subject": self.subject,
            "caller": self.caller,
            "block_height": self.block_height,
            "record_hash": self.record_hash,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.body()
        d["prev_entry_hash"] = self.prev_entry_hash
        d["entry_hash"] = self.entry_hash
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            seq=data["seq"],
            registry=data["registry"],
            operation=data["operation"],
            subject=data["subject"],
            caller=data["caller"],
            block_height=data["block_height"],
            record_hash=data["record_hash"],
            prev_entry_hash=data.get("prev_entry_hash"),
            entry_hash=data["entry_hash"],
        )


@dataclass
class ChainVerification:
    valid: bool
    entries_checked: int
    broken_at: Optional[int] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "entries_checked": self.entries_checked,
            "broken_at": self.broken_at,
            "reason": self.reason,
        }


class Journal:
    """Hash-chained journal stored alongside the registries."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def head(self) -> Optional[Dict[str, Any]]:
        return self._store.get(HEAD_NAMESPACE, HEAD_KEY)

    def append(
        self,
        ctx: CallContext,
        registry: str,
        operation: str,
        subject: str,
        record: Dict[str, Any],
    ) -> JournalEntry:
        """Append an entry. Must run inside the mutating call's transaction."""
        head = self.head()
        seq = head["seq"] + 1 if head else 1
        prev = head["entry_hash"] if head else None

        entry = JournalEntry(
            seq=seq,
            registry=registry,
            operation=operation,
            subject=subject,
            caller=ctx.caller,
            block_height=ctx.block_height,
            record_hash=payload_hash(record),
            prev_entry_hash=prev,
            entry_hash="",
        )
        entry.entry_hash = chain_entry_hash(prev, payload_hash(entry.body()))

        self._store.put(JOURNAL_NAMESPACE, f"{seq:012d}", entry.to_dict())
        self._store.put(HEAD_NAMESPACE, HEAD_KEY, {"seq": seq, "entry_hash": entry.entry_hash})
        return entry

    def entries(self) -> List[JournalEntry]:
        return [JournalEntry.from_dict(v) for _, v in self._store.items(JOURNAL_NAMESPACE)]

    def verify(self) -> ChainVerification:
        return verify_chain(self.entries())


def verify_chain(entries: List[JournalEntry]) -> ChainVerification:
    """
    Recompute the hash chain.

    Fails on the first entry whose sequence number, predecessor link, or
    entry hash does not match what the preceding entries imply.
    """
    prev: Optional[str] = None
    for index, entry in enumerate(entries):
        expected_seq = index + 1
        if entry.seq != expected_seq:
            return ChainVerification(False, index, entry.seq, f"expected seq {expected_seq}")
        if entry.prev_entry_hash != prev:
            return ChainVerification(False, index, entry.seq, "prev_entry_hash mismatch")
        expected = chain_entry_hash(prev, payload_hash(entry.body()))
        if entry.entry_hash != expected:
            return ChainVerification(False, index, entry.seq, "entry_hash mismatch")
        prev = entry.entry_hash
    return ChainVerification(True, len(entries))
