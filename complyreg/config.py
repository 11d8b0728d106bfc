"""
Configuration module for complyreg.

Centralizes configuration with environment variable support, validation,
and mtime-cached loading of the principal trust store.
"""

import json
import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("COMPLYREG_ENV", "dev")  # dev|stage|prod

DB_PATH = os.getenv("COMPLYREG_DB_PATH", "data/complyreg.db")
TRUST_STORE_PATH = os.getenv("COMPLYREG_TRUST_STORE_PATH", "trust/principals.json")

# Initial admin for every registry on a fresh store
INITIAL_ADMIN = os.getenv("COMPLYREG_ADMIN", "")

REVERIFY_POLICY = os.getenv("COMPLYREG_REVERIFY_POLICY", "strict")
REFINALIZE_POLICY = os.getenv("COMPLYREG_REFINALIZE_POLICY", "strict")

# Signed requests older or newer than this are refused; nonces are kept as long
REQUEST_MAX_AGE_SECONDS = int(os.getenv("COMPLYREG_REQUEST_MAX_AGE_SECONDS", "300"))

LOG_LEVEL = os.getenv("COMPLYREG_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("COMPLYREG_LOG_JSON", "true").lower() in ("1", "true", "yes")


# ============================================================
# Registry Policy
# ============================================================

class RepeatPolicy(str, Enum):
    """
    Behaviour when a one-shot transition is applied a second time.

    STRICT: the repeat fails and nothing changes
    IDEMPOTENT: the repeat succeeds and nothing changes
    """
    STRICT = "strict"
    IDEMPOTENT = "idempotent"


@dataclass(frozen=True)
class RegistryPolicy:
    """Policies applied to repeated institution verification and report finalization."""
    reverify: RepeatPolicy = RepeatPolicy.STRICT
    refinalize: RepeatPolicy = RepeatPolicy.STRICT

    @classmethod
    def from_env(cls) -> "RegistryPolicy":
        return cls(
            reverify=RepeatPolicy(REVERIFY_POLICY),
            refinalize=RepeatPolicy(REFINALIZE_POLICY),
        )


# ============================================================
# Cached Trust Store
# ============================================================

class CachedTrustStore:
    """
    Thread-safe trust store loader.

    The trust store maps principal identities to base64 Ed25519 public
    keys:

        {"principals": {"ST1...": "<public key b64>"}}

    The file is reloaded when its modification time changes.
    """

    def __init__(self, path: str):
        self._path = path
        self._lock = threading.RLock()
        self._cache: Optional[Dict[str, Any]] = None
        self._mtime: float = 0

    def load(self) -> Dict[str, Any]:
        with self._lock:
            try:
                mtime = os.path.getmtime(self._path)
                if self._cache is None or mtime > self._mtime:
                    with open(self._path, "r", encoding="utf-8") as f:
                        self._cache = json.load(f)
                    self._mtime = mtime
            except FileNotFoundError:
                if self._cache is None:
                    raise
            return self._cache

    def public_key(self, principal: str) -> Optional[str]:
        return self.load().get("principals", {}).get(principal)


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Check that configuration values are usable.
    Returns dict of check name -> ok.
    """
    valid_policies = {p.value for p in RepeatPolicy}
    return {
        "trust_store": Path(TRUST_STORE_PATH).exists(),
        "initial_admin": bool(INITIAL_ADMIN),
        "reverify_policy": REVERIFY_POLICY in valid_policies,
        "refinalize_policy": REFINALIZE_POLICY in valid_policies,
        "request_max_age": REQUEST_MAX_AGE_SECONDS > 0,
    }


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    return ENV == "prod"


def is_debug() -> bool:
    return os.getenv("COMPLYREG_DEBUG", "").lower() in ("1", "true", "yes")
