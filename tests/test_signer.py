import pytest

from passkey_wallet.env import Env, PolicyInterface
from passkey_wallet.signer import (
    get_signer_val_storage,
    process_signer,
    store_signer,
    verify_context,
    verify_signer_expiration,
    verify_signer_limit_keys,
)
from passkey_wallet.types import (
    ContractContext,
    CreateContractContext,
    CreateContractWithCtorContext,
    Ed25519Key,
    Ed25519Signature,
    Ed25519Signer,
    Ed25519Val,
    ErrorCode,
    PolicyKey,
    PolicySignature,
    PolicySigner,
    PolicyVal,
    Secp256r1Key,
    Secp256r1Signer,
    Secp256r1Val,
    Signatures,
    SignerExpiration,
    SignerLimits,
    SignerStorage,
    WalletError,
)

KEY_A = Ed25519Key(b"\x01" * 32)
KEY_B = Ed25519Key(b"\x02" * 32)
SIG = Ed25519Signature(b"\x00" * 64)


class RecordingPolicy(PolicyInterface):
    def __init__(self):
        self.calls = []

    def policy__(self, env, source, signer, contexts):
        self.calls.append((env.current_contract_address, source, signer, list(contexts)))


class RejectingPolicy(PolicyInterface):
    def policy__(self, env, source, signer, contexts):
        raise PermissionError("rejected")


@pytest.fixture
def env_wallet():
    env = Env()
    wallet = env.register(object())
    with env.as_contract(wallet):
        yield env, wallet


def test_process_policy_signer():
    signer = PolicySigner("CPOLICY", SignerExpiration(7), SignerLimits(), SignerStorage.TEMPORARY)
    key, val, storage = process_signer(signer)
    assert key == PolicyKey("CPOLICY")
    assert val == PolicyVal(SignerExpiration(7), SignerLimits())
    assert storage is SignerStorage.TEMPORARY


def test_process_ed25519_signer():
    key, val, storage = process_signer(Ed25519Signer(b"\x01" * 32))
    assert key == KEY_A
    assert val == Ed25519Val(SignerExpiration(), SignerLimits())
    assert storage is SignerStorage.PERSISTENT


def test_process_secp256r1_signer():
    public_key = b"\x04" + b"\x05" * 64
    key, val, storage = process_signer(Secp256r1Signer(b"id", public_key))
    assert key == Secp256r1Key(b"id")
    assert val == Secp256r1Val(public_key, SignerExpiration(), SignerLimits())
    assert storage is SignerStorage.PERSISTENT


def test_process_rejects_non_signer():
    with pytest.raises(TypeError):
        process_signer("nope")


def test_store_and_get_persistent(env_wallet):
    env, _ = env_wallet
    val = Ed25519Val(SignerExpiration(), SignerLimits())
    store_signer(env, KEY_A, val, SignerStorage.PERSISTENT, False)
    assert get_signer_val_storage(env, KEY_A, False) == (val, SignerStorage.PERSISTENT)
    assert env.storage().persistent.has(KEY_A)
    assert not env.storage().temporary.has(KEY_A)
    assert env.storage().persistent.ttl(KEY_A) == env.max_ttl


def test_store_and_get_temporary(env_wallet):
    env, _ = env_wallet
    val = Ed25519Val(SignerExpiration(), SignerLimits())
    store_signer(env, KEY_A, val, SignerStorage.TEMPORARY, False)
    assert get_signer_val_storage(env, KEY_A, True) == (val, SignerStorage.TEMPORARY)
    assert env.storage().temporary.ttl(KEY_A) == env.max_ttl


def test_store_duplicate_raises_and_keeps_value(env_wallet):
    env, _ = env_wallet
    first = Ed25519Val(SignerExpiration(), SignerLimits())
    second = Ed25519Val(SignerExpiration(3), SignerLimits())
    store_signer(env, KEY_A, first, SignerStorage.PERSISTENT, False)
    with pytest.raises(WalletError) as err:
        store_signer(env, KEY_A, second, SignerStorage.PERSISTENT, False)
    assert err.value.code is ErrorCode.ALREADY_EXISTS
    assert get_signer_val_storage(env, KEY_A, False) == (first, SignerStorage.PERSISTENT)


def test_update_missing_raises_not_found(env_wallet):
    env, _ = env_wallet
    with pytest.raises(WalletError) as err:
        store_signer(env, KEY_A, Ed25519Val(SignerExpiration(), SignerLimits()),
                     SignerStorage.PERSISTENT, True)
    assert err.value.code is ErrorCode.NOT_FOUND
    assert get_signer_val_storage(env, KEY_A, False) is None


def test_update_moves_between_storages(env_wallet):
    env, _ = env_wallet
    val = Ed25519Val(SignerExpiration(), SignerLimits())
    store_signer(env, KEY_A, val, SignerStorage.PERSISTENT, False)
    store_signer(env, KEY_A, val, SignerStorage.TEMPORARY, True)
    assert not env.storage().persistent.has(KEY_A)
    assert get_signer_val_storage(env, KEY_A, False) == (val, SignerStorage.TEMPORARY)
    store_signer(env, KEY_A, val, SignerStorage.PERSISTENT, True)
    assert not env.storage().temporary.has(KEY_A)
    assert get_signer_val_storage(env, KEY_A, False) == (val, SignerStorage.PERSISTENT)


def test_get_prefers_temporary(env_wallet):
    env, _ = env_wallet
    temp_val = Ed25519Val(SignerExpiration(1), SignerLimits())
    pers_val = Ed25519Val(SignerExpiration(2), SignerLimits())
    env.storage().persistent.set(KEY_A, pers_val)
    env.storage().temporary.set(KEY_A, temp_val)
    assert get_signer_val_storage(env, KEY_A, False) == (temp_val, SignerStorage.TEMPORARY)


def test_get_unknown_is_none(env_wallet):
    env, _ = env_wallet
    assert get_signer_val_storage(env, KEY_B, True) is None


def test_expiration(env_wallet):
    env, _ = env_wallet
    env.set_sequence(10)
    verify_signer_expiration(env, SignerExpiration(None))
    verify_signer_expiration(env, SignerExpiration(10))
    with pytest.raises(WalletError) as err:
        verify_signer_expiration(env, SignerExpiration(9))
    assert err.value.code is ErrorCode.SIGNER_EXPIRED


def test_context_without_limits_is_allowed(env_wallet):
    env, _ = env_wallet
    ctx = ContractContext("COTHER", "transfer", (1, 2, 3))
    assert verify_context(env, ctx, KEY_A, SignerLimits(None), Signatures()) is True
    assert verify_context(env, ctx, KEY_A, SignerLimits({}), Signatures()) is True


def test_contract_context_needs_listed_contract(env_wallet):
    env, _ = env_wallet
    ctx = ContractContext("COTHER", "transfer")
    assert verify_context(env, ctx, KEY_A, SignerLimits({"CELSE": None}), Signatures()) is False
    assert verify_context(env, ctx, KEY_A, SignerLimits({"COTHER": None}), Signatures()) is True


def test_self_context_only_removes_itself(env_wallet):
    env, wallet = env_wallet
    limits = SignerLimits({wallet: None})
    add = ContractContext(wallet, "add_signer", ())
    remove_self = ContractContext(wallet, "remove_signer", (KEY_A,))
    remove_other = ContractContext(wallet, "remove_signer", (KEY_B,))
    assert verify_context(env, add, KEY_A, limits, Signatures()) is False
    assert verify_context(env, remove_self, KEY_A, limits, Signatures()) is True
    assert verify_context(env, remove_other, KEY_A, limits, Signatures()) is False


@pytest.mark.parametrize(
    "ctx",
    [
        CreateContractContext(b"\x00" * 32, b"\x01" * 32),
        CreateContractWithCtorContext(b"\x00" * 32, b"\x01" * 32, (1,)),
    ],
)
def test_create_context_needs_wallet_limit(env_wallet, ctx):
    env, wallet = env_wallet
    assert verify_context(env, ctx, KEY_A, SignerLimits({"COTHER": None}), Signatures()) is False
    assert verify_context(env, ctx, KEY_A, SignerLimits({wallet: None}), Signatures()) is True


def test_required_key_must_be_signed(env_wallet):
    env, _ = env_wallet
    ctx = ContractContext("COTHER", "transfer")
    limits = SignerLimits({"COTHER": [KEY_B]})
    with pytest.raises(WalletError) as err:
        verify_context(env, ctx, KEY_A, limits, Signatures({KEY_A: SIG}))
    assert err.value.code is ErrorCode.FAILED_SIGNER_LIMITS
    assert verify_context(env, ctx, KEY_A, limits, Signatures({KEY_A: SIG, KEY_B: SIG})) is True


def test_limit_keys_none_is_noop(env_wallet):
    env, _ = env_wallet
    ctx = ContractContext("COTHER", "transfer")
    verify_signer_limit_keys(env, KEY_A, Signatures(), None, ctx)
    assert verify_context(env, ctx, KEY_A, SignerLimits({"COTHER": None}), Signatures()) is True


def test_policy_limit_key_is_called(env_wallet):
    env, wallet = env_wallet
    policy = RecordingPolicy()
    policy_address = env.register(policy)
    ctx = ContractContext("COTHER", "transfer", (1,))
    verify_signer_limit_keys(env, KEY_A, Signatures(), [PolicyKey(policy_address)], ctx)
    assert policy.calls == [(policy_address, wallet, KEY_A, [ctx])]
    assert env.current_contract_address == wallet


def test_rejecting_policy_propagates(env_wallet):
    env, _ = env_wallet
    policy_address = env.register(RejectingPolicy())
    ctx = ContractContext("COTHER", "transfer")
    limits = SignerLimits({"COTHER": [PolicyKey(policy_address)]})
    with pytest.raises(PermissionError):
        verify_context(env, ctx, KEY_A, limits, Signatures())


def test_stored_policy_limits_are_checked(env_wallet):
    env, _ = env_wallet
    policy = RecordingPolicy()
    policy_address = env.register(policy)
    policy_key = PolicyKey(policy_address)
    env.storage().persistent.set(
        policy_key, PolicyVal(SignerExpiration(), SignerLimits({"CELSE": None}))
    )
    ctx = ContractContext("COTHER", "transfer")
    with pytest.raises(WalletError) as err:
        verify_signer_limit_keys(env, KEY_A, Signatures(), [policy_key], ctx)
    assert err.value.code is ErrorCode.FAILED_POLICY_SIGNER_LIMITS
    assert policy.calls == []


def test_stored_expired_policy_raises(env_wallet):
    env, _ = env_wallet
    policy_address = env.register(RecordingPolicy())
    policy_key = PolicyKey(policy_address)
    env.storage().persistent.set(policy_key, PolicyVal(SignerExpiration(0), SignerLimits()))
    env.set_sequence(1)
    ctx = ContractContext("COTHER", "transfer")
    with pytest.raises(WalletError) as err:
        verify_signer_limit_keys(
            env, KEY_A, Signatures({policy_key: PolicySignature()}), [policy_key], ctx
        )
    assert err.value.code is ErrorCode.SIGNER_EXPIRED