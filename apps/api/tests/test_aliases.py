"""
Tests for deterministic leaderboard aliases.
"""
import uuid

from services.aliases import ADJECTIVES, CREATURES, FALLBACK_ALIAS, SUFFIXES, generate_alias, hash_seed


class TestHashSeed:

    def test_matches_classic_string_hash(self):
        assert hash_seed("") == 0
        assert hash_seed("a") == 97
        assert hash_seed("ab") == 3105
        assert hash_seed("hello") == 99162322

    def test_wraps_at_32_bits(self):
        # Hashes to exactly -2**31 before abs()
        assert hash_seed("polygenelubricants") == 2 ** 31

    def test_never_negative(self):
        for _ in range(50):
            assert hash_seed(str(uuid.uuid4())) >= 0


class TestGenerateAlias:

    def test_empty_seed_falls_back(self):
        assert generate_alias("") == FALLBACK_ALIAS == "Rogue Athlete"

    def test_known_seeds(self):
        assert generate_alias("a") == "Lucky Lynx 333"
        assert generate_alias("ab") == "Steel Tiger 808"

    def test_deterministic(self):
        seed = str(uuid.uuid4())
        assert generate_alias(seed) == generate_alias(seed)

    def test_shape(self):
        for _ in range(50):
            adjective, creature, suffix = generate_alias(str(uuid.uuid4())).split(" ")
            assert adjective in ADJECTIVES
            assert creature in CREATURES
            assert suffix in SUFFIXES

    def test_minimum_int_hash_still_yields_alias(self):
        adjective, creature, suffix = generate_alias("polygenelubricants").split(" ")
        assert adjective in ADJECTIVES
        assert creature in CREATURES
        assert suffix in SUFFIXES
