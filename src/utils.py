import hashlib
import logging

from models import Block, HashPayload

logger = logging.getLogger(__name__)

HASH_ENCODING_VERSION = 2


def hash_block(block: Block) -> str:
    payload = HashPayload(
        version=HASH_ENCODING_VERSION,
        index=block.index,
        timestamp=block.timestamp,
        transactions=block.transactions,
        previous_hash=block.previous_hash,
        nonce=block.nonce,
    )
    return hashlib.sha256(payload.model_dump_json().encode()).hexdigest()


def valid_proof(block_hash: str, difficulty: int) -> bool:
    return block_hash[:difficulty] == "0" * difficulty


def pprint(chains: list[Block]) -> None:
    for chain in chains:
        print(f"{'='*25} Block {chain.index} {'='*25}")
        for key, value in chain.model_dump(exclude={"transactions"}).items():
            print(f"{key:15}{value}")
        print(f"{'transactions':15}")
        for number, tx in enumerate(chain.transactions, start=1):
            print(f"  {number}. {tx.sender} -> {tx.receiver} {tx.amount} coins")
    print(f"{'*'*25}")
