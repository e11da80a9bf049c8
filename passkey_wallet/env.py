"""An in-memory ledger environment: contracts, storage with TTLs, auth and events."""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

DEFAULT_MAX_TTL = 6_312_000
MIN_PERSISTENT_TTL = 4096
MIN_TEMPORARY_TTL = 16

_MISSING = object()


class AuthError(Exception):
    """Raised when an address has not authorized the current invocation."""


class Storage:
    """Key/value storage whose entries live until a ledger sequence.

    The key ``None`` in `extend_ttl` and `ttl` refers to the storage as a whole,
    which is how instance storage TTL is tracked.
    """

    def __init__(self, env: "Env", min_ttl: int, evicts: bool) -> None:
        self._env = env
        self._min_ttl = min_ttl
        self._evicts = evicts
        self._entries: Dict[Any, Tuple[Any, int]] = {}
        self._live_until = env.sequence + min_ttl

    def _live(self, key: Any) -> Optional[Tuple[Any, int]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._evicts and entry[1] < self._env.sequence:
            del self._entries[key]
            return None
        return entry

    def get(self, key: Any, default: Any = None) -> Any:
        entry = self._live(key)
        return default if entry is None else entry[0]

    def set(self, key: Any, value: Any) -> None:
        entry = self._live(key)
        live_until = self._env.sequence + self._min_ttl if entry is None else entry[1]
        self._entries[key] = (value, live_until)

    def remove(self, key: Any) -> None:
        self._entries.pop(key, None)

    def has(self, key: Any) -> bool:
        return self._live(key) is not None

    def ttl(self, key: Any) -> int:
        if key is None:
            return self._live_until - self._env.sequence
        entry = self._live(key)
        if entry is None:
            raise KeyError(key)
        return entry[1] - self._env.sequence

    def extend_ttl(self, key: Any, threshold: int, extend_to: int) -> None:
        if extend_to > self._env.max_ttl:
            raise ValueError(f"extend_to {extend_to} exceeds max TTL {self._env.max_ttl}")
        if threshold > extend_to:
            raise ValueError("threshold must not exceed extend_to")
        if self.ttl(key) > threshold:
            return
        target = self._env.sequence + extend_to
        if key is None:
            self._live_until = max(self._live_until, target)
        else:
            value, live_until = self._entries[key]
            self._entries[key] = (value, max(live_until, target))


@dataclass
class ContractStorage:
    """The three storage areas of one contract."""

    persistent: Storage
    temporary: Storage
    instance: Storage
    max_ttl: int


@dataclass
class Env:
    """A simulated ledger holding contracts and their storage."""

    sequence: int = 0
    max_ttl: int = DEFAULT_MAX_TTL
    events: List[Tuple[str, tuple, Any]] = field(default_factory=list)
    auths: List[str] = field(default_factory=list)
    _contracts: Dict[str, Any] = field(default_factory=dict, repr=False)
    _storages: Dict[str, ContractStorage] = field(default_factory=dict, repr=False)
    _stack: List[str] = field(default_factory=list, repr=False)
    _mock_auths: bool = field(default=False, repr=False)
    _counter: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    def register(self, contract: Any, address: Optional[str] = None) -> str:
        """Register a contract object and return its address."""
        if address is None:
            address = f"C{next(self._counter):055d}"
        if address in self._contracts:
            raise ValueError(f"address {address} already registered")
        self._contracts[address] = contract
        self._storages[address] = ContractStorage(
            persistent=Storage(self, MIN_PERSISTENT_TTL, evicts=False),
            temporary=Storage(self, MIN_TEMPORARY_TTL, evicts=True),
            instance=Storage(self, MIN_PERSISTENT_TTL, evicts=False),
            max_ttl=self.max_ttl,
        )
        return address

    def contract(self, address: str) -> Any:
        try:
            return self._contracts[address]
        except KeyError:
            raise KeyError(f"no contract at {address}") from None

    @property
    def current_contract_address(self) -> str:
        if not self._stack:
            raise RuntimeError("no contract is executing")
        return self._stack[-1]

    def storage(self) -> ContractStorage:
        return self._storages[self.current_contract_address]

    @contextmanager
    def as_contract(self, address: str) -> Iterator[Any]:
        """Run the enclosed block as the contract at ``address``."""
        contract = self.contract(address)
        self._stack.append(address)
        try:
            yield contract
        finally:
            self._stack.pop()

    def require_auth(self, address: str) -> None:
        if not self._mock_auths:
            raise AuthError(f"{address} has not authorized this invocation")
        self.auths.append(address)

    def mock_all_auths(self) -> None:
        self._mock_auths = True

    def publish(self, topics: Sequence[Any], data: Any) -> None:
        source = self._stack[-1] if self._stack else ""
        self.events.append((source, tuple(topics), data))

    def set_sequence(self, sequence: int) -> None:
        if sequence < 0:
            raise ValueError("sequence must not be negative")
        self.sequence = sequence


class PolicyInterface(ABC):
    """A contract that approves or rejects the contexts a signer authorizes."""

    @abstractmethod
    def policy__(self, env: Env, source: str, signer: Any, contexts: Sequence[Any]) -> None:
        """Raise to reject; return to approve."""