"""Signer, key, signature and authorization context types of the wallet."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Iterator, Mapping, Optional, Tuple, Union


class ErrorCode(IntEnum):
    """Error codes reported by the wallet."""

    NOT_FOUND = 1
    ALREADY_EXISTS = 2
    MISSING_CONTEXT = 3
    SIGNER_EXPIRED = 4
    FAILED_SIGNER_LIMITS = 5
    FAILED_POLICY_SIGNER_LIMITS = 6
    SIGNATURE_KEY_VALUE_MISMATCH = 7
    CLIENT_DATA_JSON_CHALLENGE_INCORRECT = 8
    JSON_PARSE_ERROR = 9


class WalletError(Exception):
    """Raised when a wallet operation fails with one of the `ErrorCode` values."""

    def __init__(self, code: ErrorCode) -> None:
        super().__init__(f"{code.name} ({int(code)})")
        self.code = ErrorCode(code)


class SignerStorage(Enum):
    """Where a signer is kept."""

    PERSISTENT = "persistent"
    TEMPORARY = "temporary"


def _check_length(name: str, value: bytes, length: int) -> bytes:
    value = bytes(value)
    if len(value) != length:
        raise ValueError(f"{name} must be {length} bytes, got {len(value)}")
    return value


@dataclass(frozen=True)
class SignerExpiration:
    """Last ledger sequence at which a signer is valid; None means never expires."""

    ledger: Optional[int] = None


@dataclass(frozen=True)
class PolicyKey:
    address: str


@dataclass(frozen=True)
class Ed25519Key:
    public_key: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "public_key", _check_length("public_key", self.public_key, 32))


@dataclass(frozen=True)
class Secp256r1Key:
    key_id: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "key_id", bytes(self.key_id))


SignerKey = Union[PolicyKey, Ed25519Key, Secp256r1Key]


@dataclass(frozen=True, eq=True)
class SignerLimits:
    """Contracts a signer may authorize, each with extra signer keys it requires.

    ``limits`` is None when the signer is unrestricted. Otherwise it maps a
    contract address to None (no extra keys) or a tuple of required keys.
    """

    limits: Optional[Mapping[str, Optional[Tuple[SignerKey, ...]]]] = None

    def __post_init__(self) -> None:
        if self.limits is not None:
            normalized = {
                address: None if keys is None else tuple(keys)
                for address, keys in self.limits.items()
            }
            object.__setattr__(self, "limits", normalized)

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True)
class PolicySigner:
    address: str
    expiration: SignerExpiration = field(default_factory=SignerExpiration)
    limits: SignerLimits = field(default_factory=SignerLimits)
    storage: SignerStorage = SignerStorage.PERSISTENT


@dataclass(frozen=True)
class Ed25519Signer:
    public_key: bytes
    expiration: SignerExpiration = field(default_factory=SignerExpiration)
    limits: SignerLimits = field(default_factory=SignerLimits)
    storage: SignerStorage = SignerStorage.PERSISTENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "public_key", _check_length("public_key", self.public_key, 32))


@dataclass(frozen=True)
class Secp256r1Signer:
    key_id: bytes
    public_key: bytes
    expiration: SignerExpiration = field(default_factory=SignerExpiration)
    limits: SignerLimits = field(default_factory=SignerLimits)
    storage: SignerStorage = SignerStorage.PERSISTENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "key_id", bytes(self.key_id))
        object.__setattr__(self, "public_key", _check_length("public_key", self.public_key, 65))


Signer = Union[PolicySigner, Ed25519Signer, Secp256r1Signer]


@dataclass(frozen=True)
class PolicyVal:
    expiration: SignerExpiration
    limits: SignerLimits


@dataclass(frozen=True)
class Ed25519Val:
    expiration: SignerExpiration
    limits: SignerLimits


@dataclass(frozen=True)
class Secp256r1Val:
    public_key: bytes
    expiration: SignerExpiration
    limits: SignerLimits

    def __post_init__(self) -> None:
        object.__setattr__(self, "public_key", _check_length("public_key", self.public_key, 65))


SignerVal = Union[PolicyVal, Ed25519Val, Secp256r1Val]


@dataclass(frozen=True)
class Secp256r1Signature:
    authenticator_data: bytes
    client_data_json: bytes
    signature: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "authenticator_data", bytes(self.authenticator_data))
        object.__setattr__(self, "client_data_json", bytes(self.client_data_json))
        object.__setattr__(self, "signature", _check_length("signature", self.signature, 64))


@dataclass(frozen=True)
class PolicySignature:
    """Marks a policy signer in a signatures map; carries no data."""


@dataclass(frozen=True)
class Ed25519Signature:
    signature: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "signature", _check_length("signature", self.signature, 64))


Signature = Union[PolicySignature, Ed25519Signature, Secp256r1Signature]


@dataclass(frozen=True)
class Signatures:
    """Mapping of signer keys to the signatures they provide."""

    entries: Mapping[SignerKey, Signature] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", dict(self.entries))

    def __iter__(self) -> Iterator[SignerKey]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __getitem__(self, key: SignerKey) -> Signature:
        return self.entries[key]

    def items(self):
        return self.entries.items()

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True)
class ContractContext:
    """A contract function invocation being authorized."""

    contract: str
    fn_name: str
    args: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class CreateContractContext:
    """A contract deployment being authorized."""

    executable: bytes
    salt: bytes


@dataclass(frozen=True)
class CreateContractWithCtorContext:
    """A contract deployment with constructor arguments being authorized."""

    executable: bytes
    salt: bytes
    constructor_args: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "constructor_args", tuple(self.constructor_args))


Context = Union[ContractContext, CreateContractContext, CreateContractWithCtorContext]