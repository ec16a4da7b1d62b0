import hashlib

import base58
import pytest

from wallet import NETWORK_BYTE, Wallet, generate_blockchain_address

pytestmark = pytest.mark.skipif(
    "ripemd160" not in hashlib.algorithms_available,
    reason="ripemd160 is not provided by this OpenSSL build",
)


def test_address_has_valid_checksum():
    raw = base58.b58decode(Wallet().blockchain_address)
    payload, checksum = raw[:-4], raw[-4:]

    assert payload[:1] == NETWORK_BYTE
    assert len(payload) == 21
    assert hashlib.sha256(hashlib.sha256(payload).digest()).digest()[:4] == checksum


def test_address_is_stable_for_a_key():
    key = bytes(range(64))
    assert generate_blockchain_address(key) == generate_blockchain_address(key)
    assert generate_blockchain_address(key).startswith("1")


def test_wallets_differ():
    first, second = Wallet(), Wallet()
    assert first.blockchain_address != second.blockchain_address
    assert first.public_key != second.public_key
    assert len(first.public_key) == 128
