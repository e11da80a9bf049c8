"""In-memory smart wallet authorization with Ed25519, passkey and policy signers."""

__version__ = "0.4.5"