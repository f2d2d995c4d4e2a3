"""
Leaderboard aliases.

Deterministic pseudonyms so the leaderboard never shows real names. The hash
is the classic 32-bit `h * 31 + c` string hash, kept bit-for-bit so aliases
already stored on profiles stay reproducible.
"""

ADJECTIVES = (
    "Flaming",
    "Mighty",
    "Swift",
    "Shadow",
    "Electric",
    "Steel",
    "Cosmic",
    "Lucky",
    "Neon",
    "Solar",
)

CREATURES = (
    "Panther",
    "Falcon",
    "Lynx",
    "Drake",
    "Mantis",
    "Wolf",
    "Orca",
    "Phoenix",
    "Tiger",
    "Viper",
)

SUFFIXES = (
    "001",
    "101",
    "222",
    "333",
    "404",
    "505",
    "707",
    "808",
    "909",
    "999",
)

FALLBACK_ALIAS = "Rogue Athlete"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def hash_seed(seed: str) -> int:
    """Non-negative hash of `seed` (UTF-16 code units, signed 32-bit wraparound)."""
    h = 0
    encoded = seed.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return abs(h)


def generate_alias(seed: str) -> str:
    if not seed:
        return FALLBACK_ALIAS
    h = hash_seed(seed)
    # abs(-2**31) leaves int32 range; shifts operate on the wrapped value
    shifted = _to_int32(h)
    adjective = ADJECTIVES[h % len(ADJECTIVES)]
    creature = CREATURES[(shifted >> 3) % len(CREATURES)]
    suffix = SUFFIXES[(shifted >> 5) % len(SUFFIXES)]
    return f"{adjective} {creature} {suffix}"
