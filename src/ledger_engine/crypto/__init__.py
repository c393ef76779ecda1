from .paillier import (
    Ciphertext,
    HomomorphicAggregator,
    KeyPair,
    PrivateKey,
    PublicKey,
    generate_keypair,
)
from .shamir import (
    DEFAULT_MAX_SHARES,
    PRIME,
    SecretShare,
    ThresholdSecretManager,
    combine_shares,
    shares_from_json,
    shares_to_json,
    split_secret,
)

__all__ = [
    "Ciphertext",
    "HomomorphicAggregator",
    "KeyPair",
    "PrivateKey",
    "PublicKey",
    "generate_keypair",
    "DEFAULT_MAX_SHARES",
    "PRIME",
    "SecretShare",
    "ThresholdSecretManager",
    "combine_shares",
    "shares_from_json",
    "shares_to_json",
    "split_secret",
]
