import hashlib

import base58
from ecdsa import NIST256p, SigningKey, VerifyingKey

NETWORK_BYTE = b"\x00"


def generate_blockchain_address(public_key_bytes: bytes) -> str:
    """Derive a base58check address from a raw public key.

    sha256 -> ripemd160, prefixed with the network byte, followed by the
    first four bytes of a double sha256 as checksum.
    """
    ripemd160_bpk = hashlib.new("ripemd160")
    ripemd160_bpk.update(hashlib.sha256(public_key_bytes).digest())
    network_public_key = NETWORK_BYTE + ripemd160_bpk.digest()

    checksum = hashlib.sha256(hashlib.sha256(network_public_key).digest()).digest()[:4]
    return base58.b58encode(network_public_key + checksum).decode("utf-8")


class Wallet:
    """Key pair that gives a miner a blockchain address to collect rewards on.

    Transactions are not signed, so the private key never leaves the wallet.
    """

    _private_key: SigningKey
    _public_key: VerifyingKey
    _blockchain_address: str

    def __init__(self) -> None:
        self._private_key = SigningKey.generate(curve=NIST256p)
        self._public_key = self._private_key.get_verifying_key()
        self._blockchain_address = generate_blockchain_address(
            self._public_key.to_string()
        )

    @property
    def public_key(self) -> str:
        key_bytes: bytes = self._public_key.to_string()
        return key_bytes.hex()

    @property
    def blockchain_address(self) -> str:
        return self._blockchain_address
