"""Signer storage, expiration checks and signer-limit enforcement for the wallet."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from .env import Env
from .storage import extend_signer_key
from .types import (
    Context,
    ContractContext,
    CreateContractContext,
    CreateContractWithCtorContext,
    Ed25519Key,
    Ed25519Signer,
    Ed25519Val,
    ErrorCode,
    PolicyKey,
    PolicySigner,
    PolicyVal,
    Secp256r1Key,
    Secp256r1Signer,
    Secp256r1Val,
    Signatures,
    Signer,
    SignerExpiration,
    SignerKey,
    SignerLimits,
    SignerStorage,
    SignerVal,
    WalletError,
)

REMOVE_SIGNER = "remove_signer"


def process_signer(signer: Signer) -> Tuple[SignerKey, SignerVal, SignerStorage]:
    """Split a signer into the key it is stored under, its value and its storage."""
    if isinstance(signer, PolicySigner):
        return (
            PolicyKey(signer.address),
            PolicyVal(signer.expiration, signer.limits),
            signer.storage,
        )
    if isinstance(signer, Ed25519Signer):
        return (
            Ed25519Key(signer.public_key),
            Ed25519Val(signer.expiration, signer.limits),
            signer.storage,
        )
    if isinstance(signer, Secp256r1Signer):
        return (
            Secp256r1Key(signer.key_id),
            Secp256r1Val(signer.public_key, signer.expiration, signer.limits),
            signer.storage,
        )
    raise TypeError(f"not a signer: {signer!r}")


def store_signer(
    env: Env,
    signer_key: SignerKey,
    signer_val: SignerVal,
    signer_storage: SignerStorage,
    update: bool,
) -> None:
    """Store a signer, adding a new one or updating an existing one.

    Raises `WalletError` with ALREADY_EXISTS when adding a key that is stored,
    or NOT_FOUND when updating a key that is not. Nothing is changed then.
    """
    previous = get_signer_val_storage(env, signer_key, False)

    if previous is not None and not update:
        raise WalletError(ErrorCode.ALREADY_EXISTS)
    if previous is None and update:
        raise WalletError(ErrorCode.NOT_FOUND)

    storage = env.storage()
    is_persistent = signer_storage is SignerStorage.PERSISTENT
    area = storage.persistent if is_persistent else storage.temporary
    area.set(signer_key, signer_val)

    extend_signer_key(env, signer_key, is_persistent)

    if previous is not None:
        _, previous_storage = previous
        if previous_storage is SignerStorage.PERSISTENT and not is_persistent:
            storage.persistent.remove(signer_key)
        elif previous_storage is SignerStorage.TEMPORARY and is_persistent:
            storage.temporary.remove(signer_key)


def get_signer_val_storage(
    env: Env, signer_key: SignerKey, extend_ttl: bool
) -> Optional[Tuple[SignerVal, SignerStorage]]:
    """Look a signer up, temporary storage first; optionally extend its TTL."""
    storage = env.storage()

    signer_val = storage.temporary.get(signer_key)
    if signer_val is not None:
        if extend_ttl:
            extend_signer_key(env, signer_key, False)
        return signer_val, SignerStorage.TEMPORARY

    signer_val = storage.persistent.get(signer_key)
    if signer_val is not None:
        if extend_ttl:
            extend_signer_key(env, signer_key, True)
        return signer_val, SignerStorage.PERSISTENT

    return None


def verify_signer_expiration(env: Env, signer_expiration: SignerExpiration) -> None:
    """Raise SIGNER_EXPIRED once the ledger has moved past the signer's last ledger."""
    if signer_expiration.ledger is not None and env.sequence > signer_expiration.ledger:
        raise WalletError(ErrorCode.SIGNER_EXPIRED)


def _call_policy(env: Env, policy: str, signer_key: SignerKey, contexts: Sequence[Context]) -> None:
    source = env.current_contract_address
    with env.as_contract(policy) as contract:
        contract.policy__(env, source, signer_key, list(contexts))


def verify_signer_limit_keys(
    env: Env,
    signer_key: SignerKey,
    signatures: Signatures,
    signer_limits_keys: Optional[Sequence[SignerKey]],
    context: Context,
) -> None:
    """Enforce the extra keys a signer limit requires for ``context``.

    Policy keys are run against the context (and, when stored on the wallet,
    checked against their own limits); any other key must be in ``signatures``.
    """
    if signer_limits_keys is None:
        return

    for limits_key in signer_limits_keys:
        if isinstance(limits_key, PolicyKey):
            stored = get_signer_val_storage(env, limits_key, True)
            if stored is not None:
                limits_val, _ = stored
                if isinstance(limits_val, PolicyVal):
                    verify_signer_expiration(env, limits_val.expiration)
                    if not verify_context(
                        env, context, limits_key, limits_val.limits, signatures
                    ):
                        raise WalletError(ErrorCode.FAILED_POLICY_SIGNER_LIMITS)

            _call_policy(env, limits_key.address, signer_key, [context])
        elif limits_key not in signatures:
            raise WalletError(ErrorCode.FAILED_SIGNER_LIMITS)


def _verify_limited_keys(
    env: Env,
    limits: dict,
    address: str,
    context: Context,
    signer_key: SignerKey,
    signatures: Signatures,
) -> bool:
    if address not in limits:
        return False
    verify_signer_limit_keys(env, signer_key, signatures, limits[address], context)
    return True


def verify_context(
    env: Env,
    context: Context,
    signer_key: SignerKey,
    signer_limits: SignerLimits,
    signatures: Signatures,
) -> bool:
    """Tell whether a signer with ``signer_limits`` may authorize ``context``."""
    limits = signer_limits.limits
    if limits is None or not limits:
        return True

    current = env.current_contract_address

    if isinstance(context, ContractContext):
        if context.contract not in limits:
            return False
        removing = context.fn_name == REMOVE_SIGNER
        if (context.contract == current and not removing) or (
            removing and context.args[0] != signer_key
        ):
            return False
        verify_signer_limit_keys(env, signer_key, signatures, limits[context.contract], context)
        return True

    if isinstance(context, (CreateContractContext, CreateContractWithCtorContext)):
        return _verify_limited_keys(env, limits, current, context, signer_key, signatures)

    raise TypeError(f"not an authorization context: {context!r}")