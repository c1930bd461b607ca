"""Commitment and seed derivation rules.

Rule of thumb:
- OK: hashing, hex/bytes conversion, comparisons.
- Not OK: reading game rows, touching sessions, deciding who may call what.

All values travel as 0x-prefixed lower-case hex strings. bytes32 values (secret,
commitment, external random value, seed) are 64 hex digits, addresses are 40.
"""

import hashlib
import re
import secrets

ZERO_BYTES32 = "0x" + "00" * 32
ZERO_ADDRESS = "0x" + "00" * 20

_BYTES32_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_bytes32(value: str) -> str:
    """Return the canonical lower-case form of a bytes32 hex string."""
    if not isinstance(value, str) or not _BYTES32_PATTERN.match(value):
        raise ValueError(f"not a 0x-prefixed bytes32 value: {value!r}")
    return value.lower()


def normalize_address(value: str) -> str:
    """Return the canonical lower-case form of an address."""
    if not isinstance(value, str) or not _ADDRESS_PATTERN.match(value):
        raise ValueError(f"not a 0x-prefixed address: {value!r}")
    return value.lower()


def is_zero(value: str | None) -> bool:
    """True for None and for any all-zero hex value."""
    if value is None:
        return True
    return int(value, 16) == 0


def to_bytes(value: str) -> bytes:
    return bytes.fromhex(value[2:])


def to_hex(raw: bytes) -> str:
    return "0x" + raw.hex()


def hash_secret(secret: str) -> str:
    """Commitment for a secret: sha256 over its 32 raw bytes."""
    return to_hex(hashlib.sha256(to_bytes(normalize_bytes32(secret))).digest())


def verify_commitment(secret: str, commitment: str) -> bool:
    """Check that ``secret`` opens ``commitment``."""
    expected = normalize_bytes32(commitment)
    return secrets.compare_digest(hash_secret(secret), expected)


def derive_seed(external_random: str, secret: str, principal: str) -> str:
    """Combine the oracle value, the player secret and the owner into the game seed.

    Binding the principal means a value observed by a third party cannot be replayed
    into a different owner's game.
    """
    if is_zero(external_random):
        raise ValueError("external random value is not available")
    payload = (
        to_bytes(normalize_bytes32(external_random))
        + to_bytes(normalize_bytes32(secret))
        + to_bytes(normalize_address(principal))
    )
    return to_hex(hashlib.sha256(payload).digest())


def generate_secret() -> tuple[str, str]:
    """Create a fresh (secret, commitment) pair for a client."""
    secret = to_hex(secrets.token_bytes(32))
    return secret, hash_secret(secret)
