"""BIP39 mnemonic helpers."""

from functools import lru_cache

from mnemonic import Mnemonic

from ..constants import BIP39_LANGUAGE

__all__ = ["generate_mnemonic", "validate_mnemonic", "mnemonic_to_seed"]

VALID_STRENGTHS = (128, 160, 192, 224, 256)


@lru_cache(maxsize=None)
def _wordlist(language: str) -> Mnemonic:
    return Mnemonic(language)


def generate_mnemonic(strength: int = 128, language: str = BIP39_LANGUAGE) -> str:
    """Generate BIP39 mnemonic phrase from a CSPRNG."""
    if strength not in VALID_STRENGTHS:
        raise ValueError("Strength must be 128, 160, 192, 224, or 256")
    return _wordlist(language).generate(strength=strength)


def validate_mnemonic(mnemonic: str, language: str = BIP39_LANGUAGE) -> bool:
    """Check word membership and checksum."""
    if not isinstance(mnemonic, str) or not mnemonic.strip():
        return False
    try:
        return _wordlist(language).check(mnemonic)
    except (ValueError, LookupError):
        return False


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
    """Convert mnemonic to seed using PBKDF2."""
    return Mnemonic.to_seed(" ".join(mnemonic.split()), passphrase)
