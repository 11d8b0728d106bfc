import json
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Ensure the packages are importable without installation
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from complyreg import ComplianceLedger, PrincipalKey, SqliteStore, StoredHeightOracle
from complyreg.config import CachedTrustStore
from complyreg_service import main


@pytest.fixture
def admin_key():
    return PrincipalKey.generate("ST1ADMIN")


@pytest.fixture
def submitter_key():
    return PrincipalKey.generate("ST2SUBMITTER")


@pytest.fixture
def ledger(tmp_path, admin_key, submitter_key):
    """Service ledger on a fresh SQLite file with both principals trusted."""
    trust_path = tmp_path / "principals.json"
    trust_path.write_text(json.dumps({
        "principals": {k.principal: k.public_key_b64() for k in (admin_key, submitter_key)}
    }), encoding="utf-8")

    store = SqliteStore(tmp_path / "registry.db")
    main.LEDGER = ComplianceLedger(store, admin=admin_key.principal, height=StoredHeightOracle(store))
    main.TRUST = CachedTrustStore(str(trust_path))
    yield main.LEDGER
    main.LEDGER = None
    main.TRUST = None
    store.close()


@pytest.fixture
def client(ledger):
    return TestClient(main.app)
