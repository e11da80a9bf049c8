# passkey_wallet

An in-memory model of a smart wallet. Registered signers decide whether the
wallet authorizes an action. There are three kinds of signer:

- **Ed25519** keys sign the 32-byte payload directly.
- **secp256r1** passkeys (WebAuthn) sign the authenticator data followed by
  the SHA-256 of the client data JSON. The `challenge` in that JSON must be
  the unpadded base64url encoding of the payload.
- **Policies** are registered objects that accept the contexts being
  authorized, or reject them by raising.

A signer can be limited to certain contract addresses. A limit can also
require further keys: a policy key is run against the context, and any other
key must appear in the signatures. A signer can expire after a ledger
sequence number. Each signer is kept in persistent or temporary storage.

## Installation

```
pip install passkey_wallet
```

To run the tests:

```
pip install "passkey_wallet[test]"
pytest
```

## Modules

- `passkey_wallet.types` holds the data types:
  - signers: `Ed25519Signer`, `Secp256r1Signer`, `PolicySigner`;
  - signer keys: `Ed25519Key`, `Secp256r1Key`, `PolicyKey`;
  - signer settings: `SignerExpiration`, `SignerLimits`, `SignerStorage`;
  - signatures: `Ed25519Signature`, `Secp256r1Signature`,
    `PolicySignature`, `Signatures`;
  - contexts: `ContractContext`, `CreateContractContext`,
    `CreateContractWithCtorContext`;
  - errors: `WalletError`, which carries an `ErrorCode`.
- `passkey_wallet.env` provides `Env`, a simulated ledger. It holds the
  registered contracts and their persistent, temporary and instance
  `Storage`, with TTLs. It also keeps the ledger sequence, authorizations and
  published events. This module also defines `AuthError` and the abstract
  `PolicyInterface`.
- `passkey_wallet.wallet` provides `SmartWallet`.
- `passkey_wallet.signer` provides the signer storage, expiration and limit
  checks that `SmartWallet` uses.
- `passkey_wallet.verify` provides `verify_ed25519_signature` and
  `verify_secp256r1_signature`.
- `passkey_wallet.base64_url` provides `encode`, which does unpadded
  URL-safe base64.
- `passkey_wallet.storage` provides the TTL extension helpers.
- `passkey_wallet.policies` provides ready-made policies.

## Usage

```python
from passkey_wallet.env import Env
from passkey_wallet.types import (
    ContractContext, Ed25519Key, Ed25519Signature, Ed25519Signer,
    Signatures, SignerExpiration, SignerLimits, SignerStorage,
)
from passkey_wallet.wallet import SmartWallet

env = Env()
signer = Ed25519Signer(
    public_key,                     # 32 raw bytes
    SignerExpiration(None),
    SignerLimits(None),
    SignerStorage.PERSISTENT,
)
wallet = SmartWallet(env, "wallet", signer)   # None picks a fresh address

wallet.check_auth(
    payload,                        # 32-byte signature payload
    Signatures({Ed25519Key(public_key): Ed25519Signature(sig)}),
    [ContractContext("token", "transfer", ["wallet", "bob", 100])],
)
```

`check_auth` returns `None` when both of these hold:

- every context is allowed by some stored signer in the signatures;
- every signature verifies for its key.

Otherwise it raises one of these errors:

- `WalletError`, whose `code` gives the reason: `NOT_FOUND`,
  `MISSING_CONTEXT`, `SIGNER_EXPIRED`, `FAILED_SIGNER_LIMITS`,
  `FAILED_POLICY_SIGNER_LIMITS`, `SIGNATURE_KEY_VALUE_MISMATCH`,
  `CLIENT_DATA_JSON_CHALLENGE_INCORRECT` or `JSON_PARSE_ERROR`;
- `cryptography.exceptions.InvalidSignature`, for a signature that does not
  verify;
- `ValueError`, for a payload that is not 32 bytes.

The signer passed to `SmartWallet` is added without authorization. After
that, `add_signer`, `update_signer`, `remove_signer` and
`update_contract_code` each need the wallet's own authorization. Without it
they raise `AuthError`. In tests, call `Env.mock_all_auths()` to grant
authorization. Signer changes are published to `env.events` under the tag
`"sw_v1"`.

Expiration is checked against `env.sequence`, which you set with
`Env.set_sequence`.

## Policies

`passkey_wallet.policies` provides three policies. Each one raises
`PolicyError` to reject a call, and each one rejects any context that is not
a `ContractContext`.

- `SamplePolicy` rejects `transfer` calls whose third argument is an
  integer above 10,000,000.
- `UserPolicy` allows `transfer`, `claimrwd` and `crt_mkt`. It allows
  `placebet` with a third argument of at least 100,000,000. It rejects
  everything else.
- `MarketPolicy(oracle, protocol)` checks these calls:
  - `init` needs a stake of at least 10,000,000,000;
  - `placebet` needs at least 50,000,000;
  - `propose` is allowed only for `PolicyKey(oracle)`;
  - `finalize`, `distrib`, `retstake` and `slashstk` are allowed only for
    `PolicyKey(protocol)`.

  It rejects everything else.

To use a policy, register it with the `Env` and add it to the wallet as a
`PolicySigner`:

```python
from passkey_wallet.policies import UserPolicy
from passkey_wallet.types import PolicyKey, PolicySignature, PolicySigner

policy_address = env.register(UserPolicy())
wallet = SmartWallet(env, None, PolicySigner(policy_address))
wallet.check_auth(
    bytes(32),
    Signatures({PolicyKey(policy_address): PolicySignature()}),
    [ContractContext("market", "placebet", ["wallet", "m1", 100_000_000])],
)
```

## What this package does not do

Everything runs in memory, inside an `Env`. The package does not:

- connect to a network or a real ledger;
- encode transactions or authorization entries;
- deploy contracts.

`update_contract_code` only records the new 32-byte hash in
`SmartWallet.code_hash`.