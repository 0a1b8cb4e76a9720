from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Dict, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .config import ServiceAccountCredential
from .errors import CredentialError

_PEM_NOISE = re.compile(r"-----(BEGIN|END) PRIVATE KEY-----|\s")


def build_header() -> Dict[str, str]:
    return {"alg": "RS256", "typ": "JWT"}


def build_payload(
    *,
    client_email: str,
    now: int,
    scope: str,
    audience: str,
    lifetime: int = 3600,
) -> Dict[str, Any]:
    return {
        "iss": client_email,
        "scope": scope,
        "aud": audience,
        "iat": now,
        "exp": now + lifetime,
    }


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def encode_segment(value: Union[Dict[str, Any], bytes]) -> str:
    """
    Base64url segment of a JWT.

    - dicts are serialized as compact JSON (no spaces), UTF-8
    - raw bytes (the signature) are encoded as-is
    - '=' padding is stripped
    """
    if isinstance(value, bytes):
        return b64url(value)
    return b64url(json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))


def decode_segment(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def load_private_key(pem: str) -> rsa.RSAPrivateKey:
    """
    Parse a PKCS#8 PEM key the way service-account JSON files ship it.

    The delimiters and all whitespace are stripped and the remaining body is
    base64-decoded to DER, so a key whose newlines were flattened by an env
    var still parses.
    """
    body = _PEM_NOISE.sub("", pem or "").strip()
    if not body:
        raise CredentialError("Private key is empty")
    try:
        der = base64.b64decode(body, validate=True)
        key = serialization.load_der_private_key(der, password=None)
    except (binascii.Error, ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CredentialError(f"Cannot parse service account private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise CredentialError("Service account private key is not an RSA key")
    return key


def sign(signing_input: str, key: rsa.RSAPrivateKey) -> str:
    signature = key.sign(signing_input.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    return encode_segment(signature)


def assemble(header_segment: str, payload_segment: str, signature_segment: str) -> str:
    return f"{header_segment}.{payload_segment}.{signature_segment}"


def mint_assertion(
    credential: ServiceAccountCredential,
    *,
    now: int,
    scope: str,
    audience: str,
    lifetime: int = 3600,
) -> str:
    key = load_private_key(credential.private_key_pem)
    header_segment = encode_segment(build_header())
    payload_segment = encode_segment(
        build_payload(client_email=credential.client_email, now=now, scope=scope, audience=audience, lifetime=lifetime)
    )
    signing_input = f"{header_segment}.{payload_segment}"
    return assemble(header_segment, payload_segment, sign(signing_input, key))
