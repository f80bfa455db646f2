"""
Key material for identity tokens.

The identity provider signs tokens with its private key; this service only
ever needs the PEM-encoded public key. Key generation and the private-key
loader exist for the development CLI and the tests, which stand in for the
provider.
"""

from typing import NamedTuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    Encoding,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)

SUPPORTED_KEY_TYPES = {"Ed25519": (Ed25519PrivateKey, Ed25519PublicKey)}


class UnsupportedKeyType(Exception):
    pass


class KeyLoadError(Exception):
    pass


class IdentityKeyPair(NamedTuple):
    public_key: bytes
    private_key: bytes


def _key_classes(key_pair_type: str):
    try:
        return SUPPORTED_KEY_TYPES[key_pair_type]
    except KeyError:
        raise UnsupportedKeyType(f"Key pair type {key_pair_type} is not supported")


def generate_key_pair(key_pair_type: str, key_password: str) -> IdentityKeyPair:
    """
    Generate a PEM key pair, with the private half encrypted by `key_password`.

    Raises
    ------
    UnsupportedKeyType
        For anything other than Ed25519.
    """
    private_class, _ = _key_classes(key_pair_type)
    private = private_class.generate()

    return IdentityKeyPair(
        public_key=private.public_key().public_bytes(
            encoding=Encoding.PEM, format=PublicFormat.SubjectPublicKeyInfo
        ),
        private_key=private.private_bytes(
            encoding=Encoding.PEM,
            format=PrivateFormat.PKCS8,
            encryption_algorithm=BestAvailableEncryption(key_password.encode("utf-8")),
        ),
    )


def load_signing_key(private_key: bytes, key_password: str, key_pair_type: str):
    private_class, _ = _key_classes(key_pair_type)

    try:
        key = load_pem_private_key(data=private_key, password=key_password.encode("utf-8"))
    except (ValueError, TypeError, UnsupportedAlgorithm):
        raise KeyLoadError("Unable to load the signing key")

    if not isinstance(key, private_class):
        raise KeyLoadError(f"Signing key is not an {key_pair_type} key")

    return key


def load_verification_key(public_key: bytes, key_pair_type: str):
    _, public_class = _key_classes(key_pair_type)

    try:
        key = load_pem_public_key(data=public_key)
    except (ValueError, UnsupportedAlgorithm):
        raise KeyLoadError("Unable to load the identity provider's public key")

    if not isinstance(key, public_class):
        raise KeyLoadError(f"Identity public key is not an {key_pair_type} key")

    return key
