"""TTL extension for the wallet's instance and signer entries."""

from .env import Env
from .types import SignerKey

WEEK_OF_LEDGERS = 60 * 60 * 24 // 5 * 7


def extend_instance(env: Env) -> None:
    storage = env.storage()
    max_ttl = storage.max_ttl
    storage.instance.extend_ttl(None, max_ttl - WEEK_OF_LEDGERS, max_ttl)


def extend_signer_key(env: Env, signer_key: SignerKey, persistent: bool) -> None:
    storage = env.storage()
    max_ttl = storage.max_ttl
    area = storage.persistent if persistent else storage.temporary
    area.extend_ttl(signer_key, max_ttl - WEEK_OF_LEDGERS, max_ttl)