"""
complyreg Principal Signing

Callers of the HTTP service prove their identity with Ed25519 (RFC 8032)
signatures over a canonical request payload:

    payload = CJE({"caller", "method", "path", "body", "nonce", "issued_at"})

The nonce makes each signed request single-use; issued_at (unix seconds)
bounds how long the server has to remember it.

Keys and signatures are carried as standard base64.
"""

import base64
import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .canonicalization import canonicalize


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode('ascii'))


@dataclass
class PrincipalKey:
    """Ed25519 key pair bound to a principal identity."""
    principal: str
    signing_key: bytes
    verify_key: bytes

    @classmethod
    def generate(cls, principal: str) -> "PrincipalKey":
        sk = SigningKey.generate()
        return cls(principal=principal, signing_key=bytes(sk), verify_key=bytes(sk.verify_key))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrincipalKey":
        sk = SigningKey(b64d(data["private_key_b64"]))
        return cls(principal=data["principal"], signing_key=bytes(sk), verify_key=bytes(sk.verify_key))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principal": self.principal,
            "private_key_b64": b64e(self.signing_key),
            "public_key_b64": b64e(self.verify_key),
        }

    def public_key_b64(self) -> str:
        return b64e(self.verify_key)

    def sign_request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]],
        nonce: str,
        issued_at: int
    ) -> str:
        """Sign a request on behalf of this principal. Returns base64 signature."""
        payload = request_payload(self.principal, method, path, body, nonce, issued_at)
        return b64e(SigningKey(self.signing_key).sign(payload).signature)

    def headers(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        nonce: Optional[str] = None,
        issued_at: Optional[int] = None
    ) -> Dict[str, str]:
        """Authentication headers for one request, with a fresh nonce unless given."""
        nonce = nonce or new_nonce()
        issued_at = int(time.time()) if issued_at is None else issued_at
        return {
            "X-Caller": self.principal,
            "X-Nonce": nonce,
            "X-Issued-At": str(issued_at),
            "X-Signature": self.sign_request(method, path, body, nonce, issued_at),
        }


def new_nonce() -> str:
    return secrets.token_hex(16)


def request_payload(
    caller: str,
    method: str,
    path: str,
    body: Optional[Dict[str, Any]],
    nonce: str,
    issued_at: int
) -> bytes:
    return canonicalize({
        "caller": caller,
        "method": method.upper(),
        "path": path,
        "body": body or {},
        "nonce": nonce,
        "issued_at": issued_at,
    })


def verify_ed25519(signature_b64: str, payload: bytes, public_key_b64: str) -> bool:
    """
    Verify an Ed25519 signature.

    Returns:
        True if signature is valid, False otherwise (including malformed
        key or signature encodings)
    """
    try:
        vk = VerifyKey(b64d(public_key_b64))
        vk.verify(payload, b64d(signature_b64))
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False
