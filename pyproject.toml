[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "passkey_wallet"
version = "0.4.5"
description = "In-memory smart wallet authorization model with passkey, Ed25519 and policy signers"
requires-python = ">=3.10"
keywords = ["wallet", "passkey", "webauthn", "ed25519", "secp256r1", "authorization", "policy"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["passkey_wallet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
