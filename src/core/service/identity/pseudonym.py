"""
Deterministic pseudonyms derived from a wallet address.
"""

import hashlib
import re
from typing import Callable, Optional

ADJECTIVES = (
    "Cosmic", "Quantum", "Digital", "Cyber", "Neural",
    "Virtual", "Mystic", "Stellar", "Neon", "Crypto",
)
NOUNS = (
    "Wanderer", "Pioneer", "Explorer", "Dreamer", "Seeker",
    "Voyager", "Oracle", "Guardian", "Sage", "Navigator",
)

HashFunction = Callable[[str], str]


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_pseudonym(address: str, variant: int = 0, hash_fn: Optional[HashFunction] = None) -> str:
    """
    Pick adjective, noun and a 4-digit suffix from the leading hex digits of
    hash(address). Variant n > 0 hashes "address:n" instead.
    """
    hash_fn = hash_fn or sha256_hex
    digest = hash_fn(address if variant == 0 else f"{address}:{variant}")

    adjective = ADJECTIVES[int(digest[0:2], 16) % len(ADJECTIVES)]
    noun = NOUNS[int(digest[2:4], 16) % len(NOUNS)]
    suffix = int(digest[4:8], 16) % 10000
    return f"{adjective}{noun}{suffix}"


def chat_localpart(pseudonym: str) -> str:
    return re.sub(r"\s+", "_", pseudonym.strip().lower())


def chat_user_id(pseudonym: str, server_name: str) -> str:
    """@localpart:server for a pseudonym"""
    return f"@{chat_localpart(pseudonym)}:{server_name}"
