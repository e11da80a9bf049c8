"""Policy contracts that approve or reject the contexts a policy signer authorizes."""

from __future__ import annotations

from typing import Any, Sequence

from .env import Env, PolicyInterface
from .types import Context, ContractContext, PolicyKey, SignerKey

STROOPS_PER_XLM = 10_000_000
_I128_MIN = -(2**127)
_I128_MAX = 2**127 - 1


class PolicyError(Exception):
    """Raised by a policy to reject the contexts it was asked to approve."""

    NOT_ALLOWED = 1
    BAD_ARGS = 2

    _NAMES = {NOT_ALLOWED: "NOT_ALLOWED", BAD_ARGS: "BAD_ARGS"}

    def __init__(self, code: int = NOT_ALLOWED) -> None:
        super().__init__(f"{self._NAMES.get(code, 'UNKNOWN')} ({code})")
        self.code = code


def _as_i128(value: Any) -> int | None:
    """Return ``value`` if it is a 128-bit signed integer, else None."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if not _I128_MIN <= value <= _I128_MAX:
        return None
    return value


def _amount_arg(args: Sequence[Any], index: int) -> int:
    """Fetch a required 128-bit integer argument; fail if absent or of another type."""
    if index >= len(args):
        raise IndexError(f"argument {index} is missing")
    amount = _as_i128(args[index])
    if amount is None:
        raise TypeError(f"argument {index} is not a 128-bit integer: {args[index]!r}")
    return amount


class SamplePolicy(PolicyInterface):
    """Rejects token transfers above one million stroops-times-ten and any deployment."""

    MAX_TRANSFER = 10_000_000

    def policy__(
        self, env: Env, source: str, signer: SignerKey, contexts: Sequence[Context]
    ) -> None:
        for context in contexts:
            if not isinstance(context, ContractContext):
                raise PolicyError(PolicyError.NOT_ALLOWED)
            if len(context.args) <= 2:
                continue
            amount = _as_i128(context.args[2])
            if amount is None:
                continue
            if context.fn_name == "transfer" and amount > self.MAX_TRANSFER:
                raise PolicyError(PolicyError.NOT_ALLOWED)


class UserPolicy(PolicyInterface):
    """Lets a user transfer, claim rewards, create markets and place bets of at least 10 XLM."""

    MIN_BET = 10 * STROOPS_PER_XLM
    _FREE_CALLS = frozenset({"transfer", "claimrwd", "crt_mkt"})

    def policy__(
        self, env: Env, source: str, signer: SignerKey, contexts: Sequence[Context]
    ) -> None:
        for context in contexts:
            if not isinstance(context, ContractContext):
                raise PolicyError(PolicyError.NOT_ALLOWED)
            if context.fn_name in self._FREE_CALLS:
                continue
            if context.fn_name == "placebet":
                if _amount_arg(context.args, 2) < self.MIN_BET:
                    raise PolicyError(PolicyError.NOT_ALLOWED)
                continue
            raise PolicyError(PolicyError.NOT_ALLOWED)


class MarketPolicy(PolicyInterface):
    """Guards prediction-market calls: stakes, bet minimums, and oracle/protocol-only steps."""

    CREATION_STAKE = 1000 * STROOPS_PER_XLM
    MIN_BET = 5 * STROOPS_PER_XLM
    _PROTOCOL_CALLS = frozenset({"finalize", "distrib", "retstake", "slashstk"})

    def __init__(self, oracle: str, protocol: str) -> None:
        self.oracle_key = PolicyKey(oracle)
        self.protocol_key = PolicyKey(protocol)

    def policy__(
        self, env: Env, source: str, signer: SignerKey, contexts: Sequence[Context]
    ) -> None:
        for context in contexts:
            if not isinstance(context, ContractContext):
                raise PolicyError(PolicyError.NOT_ALLOWED)
            fn_name = context.fn_name
            if fn_name == "init":
                if _amount_arg(context.args, 2) < self.CREATION_STAKE:
                    raise PolicyError(PolicyError.NOT_ALLOWED)
            elif fn_name == "placebet":
                if _amount_arg(context.args, 2) < self.MIN_BET:
                    raise PolicyError(PolicyError.NOT_ALLOWED)
            elif fn_name == "propose":
                if signer != self.oracle_key:
                    raise PolicyError(PolicyError.NOT_ALLOWED)
            elif fn_name in self._PROTOCOL_CALLS:
                if signer != self.protocol_key:
                    raise PolicyError(PolicyError.NOT_ALLOWED)
            else:
                raise PolicyError(PolicyError.NOT_ALLOWED)