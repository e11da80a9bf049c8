"""The smart wallet contract: signer management and custom account authorization."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from .env import Env
from .signer import (
    get_signer_val_storage,
    process_signer,
    store_signer,
    verify_context,
    verify_signer_expiration,
)
from .storage import extend_instance
from .types import (
    Context,
    Ed25519Key,
    Ed25519Signature,
    ErrorCode,
    PolicyKey,
    PolicySignature,
    Secp256r1Signature,
    Secp256r1Val,
    Signatures,
    Signer,
    SignerKey,
    SignerStorage,
    WalletError,
)
from .verify import verify_ed25519_signature, verify_secp256r1_signature

EVENT_TAG = "sw_v1"
INITIALIZED = "init"


class SmartWallet:
    """A wallet account whose authorization is decided by its stored signers.

    Creating one registers it with ``env`` (at ``address``, or a fresh address
    when that is None) and adds ``signer`` without requiring authorization.
    """

    def __init__(self, env: Env, address: Optional[str], signer: Signer) -> None:
        self.env = env
        self.address = env.register(self, address)
        self.code_hash: Optional[bytes] = None
        self.add_signer(signer)

    @contextmanager
    def _running(self) -> Iterator[None]:
        with self.env.as_contract(self.address):
            yield

    def add_signer(self, signer: Signer) -> None:
        """Add a new signer; after the first one this requires the wallet's own auth."""
        with self._running():
            instance = self.env.storage().instance
            if instance.get(INITIALIZED, False):
                self.env.require_auth(self.address)
            else:
                instance.set(INITIALIZED, True)

            signer_key, signer_val, signer_storage = process_signer(signer)
            store_signer(self.env, signer_key, signer_val, signer_storage, False)
            extend_instance(self.env)
            self.env.publish((EVENT_TAG, "add", signer_key), (signer_val, signer_storage))

    def update_signer(self, signer: Signer) -> None:
        """Replace an existing signer's value and storage."""
        with self._running():
            self.env.require_auth(self.address)

            signer_key, signer_val, signer_storage = process_signer(signer)
            store_signer(self.env, signer_key, signer_val, signer_storage, True)
            extend_instance(self.env)
            self.env.publish((EVENT_TAG, "update", signer_key), (signer_val, signer_storage))

    def remove_signer(self, signer_key: SignerKey) -> None:
        """Remove a stored signer; raises NOT_FOUND if there is none."""
        with self._running():
            self.env.require_auth(self.address)

            stored = get_signer_val_storage(self.env, signer_key, False)
            if stored is None:
                raise WalletError(ErrorCode.NOT_FOUND)
            _, signer_storage = stored
            storage = self.env.storage()
            if signer_storage is SignerStorage.PERSISTENT:
                storage.persistent.remove(signer_key)
            else:
                storage.temporary.remove(signer_key)

            extend_instance(self.env)
            self.env.publish((EVENT_TAG, "remove", signer_key), ())

    def update_contract_code(self, code_hash: bytes) -> None:
        """Record a new 32-byte code hash for the wallet."""
        code_hash = bytes(code_hash)
        if len(code_hash) != 32:
            raise ValueError(f"code hash must be 32 bytes, got {len(code_hash)}")
        with self._running():
            self.env.require_auth(self.address)
            self.code_hash = code_hash
            extend_instance(self.env)

    def _call_policy(self, policy: str, signer_key: SignerKey, contexts: Sequence[Context]) -> None:
        source = self.env.current_contract_address
        with self.env.as_contract(policy) as contract:
            contract.policy__(self.env, source, signer_key, list(contexts))

    def _context_authorized(self, context: Context, signatures: Signatures) -> bool:
        for signer_key in signatures:
            stored = get_signer_val_storage(self.env, signer_key, False)
            if stored is None:
                continue
            signer_val, _ = stored
            verify_signer_expiration(self.env, signer_val.expiration)
            if verify_context(self.env, context, signer_key, signer_val.limits, signatures):
                return True
        return False

    def check_auth(
        self,
        signature_payload: bytes,
        signatures: Signatures,
        auth_contexts: Sequence[Context],
    ) -> None:
        """Authorize ``auth_contexts`` with ``signatures`` over ``signature_payload``.

        Every context must be allowed by some stored signer in ``signatures``,
        and every signature must be valid for its key. Raises `WalletError`,
        or `cryptography.exceptions.InvalidSignature` for a bad signature.
        """
        signature_payload = bytes(signature_payload)
        if len(signature_payload) != 32:
            raise ValueError(f"signature payload must be 32 bytes, got {len(signature_payload)}")
        auth_contexts = list(auth_contexts)

        with self._running():
            for context in auth_contexts:
                if not self._context_authorized(context, signatures):
                    raise WalletError(ErrorCode.MISSING_CONTEXT)

            for signer_key, signature in signatures.items():
                stored = get_signer_val_storage(self.env, signer_key, True)
                if stored is None:
                    raise WalletError(ErrorCode.NOT_FOUND)
                signer_val, _ = stored

                if isinstance(signature, PolicySignature):
                    if not isinstance(signer_key, PolicyKey):
                        raise WalletError(ErrorCode.SIGNATURE_KEY_VALUE_MISMATCH)
                    self._call_policy(signer_key.address, signer_key, auth_contexts)
                elif isinstance(signature, Ed25519Signature):
                    if not isinstance(signer_key, Ed25519Key):
                        raise WalletError(ErrorCode.SIGNATURE_KEY_VALUE_MISMATCH)
                    verify_ed25519_signature(
                        signer_key.public_key, signature_payload, signature.signature
                    )
                elif isinstance(signature, Secp256r1Signature):
                    if not isinstance(signer_val, Secp256r1Val):
                        raise WalletError(ErrorCode.SIGNATURE_KEY_VALUE_MISMATCH)
                    verify_secp256r1_signature(signature_payload, signer_val.public_key, signature)
                else:
                    raise TypeError(f"not a signature: {signature!r}")

            extend_instance(self.env)