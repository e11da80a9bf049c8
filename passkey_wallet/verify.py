"""Signature verification for ed25519 and WebAuthn secp256r1 signers."""

import hashlib
import json

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, encode_dss_signature

from . import base64_url
from .types import ErrorCode, Secp256r1Signature, WalletError

MAX_CLIENT_DATA_JSON = 1024
_P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551


def verify_ed25519_signature(public_key: bytes, payload: bytes, signature: bytes) -> None:
    """Raise `InvalidSignature` unless ``signature`` signs ``payload``."""
    Ed25519PublicKey.from_public_bytes(bytes(public_key)).verify(bytes(signature), bytes(payload))


def verify_secp256r1_signature(
    signature_payload: bytes, public_key: bytes, signature: Secp256r1Signature
) -> None:
    """Check a WebAuthn assertion over ``signature_payload``.

    Raises `InvalidSignature` for a bad signature and `WalletError` when the
    client data JSON cannot be parsed or carries the wrong challenge.
    """
    signed = signature.authenticator_data + hashlib.sha256(signature.client_data_json).digest()
    digest = hashlib.sha256(signed).digest()

    r = int.from_bytes(signature.signature[:32], "big")
    s = int.from_bytes(signature.signature[32:], "big")
    if not (0 < r < _P256_ORDER and 0 < s <= _P256_ORDER // 2):
        raise InvalidSignature()
    key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), bytes(public_key))
    key.verify(encode_dss_signature(r, s), digest, ec.ECDSA(Prehashed(hashes.SHA256())))

    if len(signature.client_data_json) > MAX_CLIENT_DATA_JSON:
        raise ValueError(f"client data JSON exceeds {MAX_CLIENT_DATA_JSON} bytes")
    try:
        client_data = json.loads(signature.client_data_json.decode("utf-8"))
        challenge = client_data["challenge"]
        if not isinstance(challenge, str):
            raise TypeError(challenge)
    except (ValueError, KeyError, TypeError):
        raise WalletError(ErrorCode.JSON_PARSE_ERROR) from None

    if challenge.encode() != base64_url.encode(signature_payload):
        raise WalletError(ErrorCode.CLIENT_DATA_JSON_CHALLENGE_INCORRECT)