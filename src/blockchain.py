import logging
import math
import sys
import threading

from mining import Miner
from models import (
    Block,
    InvalidReason,
    Transaction,
    TransactionError,
    ValidationResult,
    now,
)
from utils import hash_block, valid_proof

logging.basicConfig(level=logging.INFO, stream=sys.stdout)
logger = logging.getLogger(__name__)

MINING_DIFFICULTY = 3
MINING_SENDER = "THE BLOCKCHAIN"
MINING_REWARD = 1.0
GENESIS_PREVIOUS_HASH = "0"


def valid_chain(chain: list[Block], difficulty: int) -> ValidationResult:
    """Check hashes, links and proofs of ``chain`` from block 1 onwards.

    The genesis block is trusted as is. The first failing block is reported.
    """
    if not chain:
        return ValidationResult.invalid(InvalidReason.EMPTY_CHAIN, 0)

    pre_block = chain[0]
    for current_index in range(1, len(chain)):
        block = chain[current_index]

        if block.hash != hash_block(block):
            return _invalid(InvalidReason.HASH_MISMATCH, current_index)

        if (
            block.previous_hash != pre_block.hash
            or block.index != pre_block.index + 1
        ):
            return _invalid(InvalidReason.BROKEN_LINK, current_index)

        if not valid_proof(block.hash, difficulty):
            return _invalid(InvalidReason.PROOF_OF_WORK_NOT_MET, current_index)

        pre_block = block

    return ValidationResult.ok()


def _invalid(reason: InvalidReason, index: int) -> ValidationResult:
    logger.error({"action": "valid_chain", "block": index, "error": reason.value})
    return ValidationResult.invalid(reason, index)


def calculate_total_amount(chain: list[Block], blockchain_address: str) -> float:
    total_amount = 0.0
    for block in chain:
        for transaction in block.transactions:
            amount = transaction.amount
            if blockchain_address == transaction.receiver:
                total_amount += amount
            if blockchain_address == transaction.sender:
                total_amount -= amount

    return total_amount


class BlockChain:
    transaction_pool: list[Transaction]
    chain: list[Block]
    difficulty: int
    mining_reward: float
    blockchain_address: str | None
    strict: bool
    miner: Miner
    lock: threading.Lock

    def __init__(
        self,
        difficulty: int = MINING_DIFFICULTY,
        mining_reward: float = MINING_REWARD,
        blockchain_address: str | None = None,
        strict: bool = False,
        workers: int = 1,
    ) -> None:
        self.transaction_pool = []
        self.chain = []
        self.difficulty = difficulty
        self.mining_reward = mining_reward
        self.blockchain_address = blockchain_address
        self.strict = strict
        self.miner = Miner(difficulty=difficulty, workers=workers)
        self.lock = threading.Lock()
        self.create_genesis_block()

    def create_genesis_block(self) -> Block:
        draft = Block(
            index=0,
            transactions=[],
            previous_hash=GENESIS_PREVIOUS_HASH,
            difficulty=self.difficulty,
        )
        genesis = self.miner.mine(draft)
        self.chain.append(genesis)
        return genesis

    @property
    def last_block(self) -> Block:
        return self.chain[-1]

    def verify_transaction(self, transaction: Transaction) -> None:
        if not math.isfinite(transaction.amount) or transaction.amount <= 0:
            raise TransactionError(f"amount must be positive: {transaction.amount}")

        if not transaction.sender or not transaction.receiver:
            raise TransactionError("sender and receiver are required")

        if transaction.sender == MINING_SENDER:
            raise TransactionError(f"{MINING_SENDER} only pays mining rewards")

        pending_outflow = sum(
            pending.amount
            for pending in self.transaction_pool
            if pending.sender == transaction.sender
        )
        # pending inflows are not spendable until mined
        available = self.calculate_total_amount(transaction.sender) - pending_outflow
        if available < transaction.amount:
            raise TransactionError(
                f"insufficient balance for {transaction.sender}: {transaction.amount}"
            )

    def add_transaction(self, transaction: Transaction) -> bool:
        with self.lock:
            if self.strict:
                try:
                    self.verify_transaction(transaction)
                except TransactionError as ex:
                    logger.error({"action": "add_transaction", "error": str(ex)})
                    raise

            self.transaction_pool.append(transaction)

        logger.info(
            {
                "action": "add_transaction",
                "status": "success",
                "pending": len(self.transaction_pool),
            }
        )
        return True

    def create_transaction(
        self, sender: str, receiver: str, amount: float
    ) -> Transaction:
        transaction = Transaction(sender=sender, receiver=receiver, amount=amount)
        self.add_transaction(transaction)
        return transaction

    def mining(self, miner_address: str | None = None) -> Block:
        """Mine the whole pool plus a reward transaction into one new block.

        On ``MiningCancelled`` the chain and the pool are left untouched.
        """
        if miner_address is None:
            miner_address = self.blockchain_address
        if miner_address is None:
            raise ValueError("a miner address is required")

        with self.lock:
            reward_transaction = Transaction(
                sender=MINING_SENDER,
                receiver=miner_address,
                amount=self.mining_reward,
            )
            draft = Block(
                index=len(self.chain),
                timestamp=now(),
                transactions=[*self.transaction_pool, reward_transaction],
                previous_hash=self.last_block.hash,
                difficulty=self.difficulty,
            )
            block = self.miner.mine(draft)
            self.chain.append(block)
            self.transaction_pool = []

        logger.info(
            {
                "action": "mining",
                "status": "success",
                "index": block.index,
                "transactions": len(block.transactions),
            }
        )
        return block

    def mine_pending_transactions(self, miner_address: str) -> Block:
        return self.mining(miner_address)

    def cancel_mining(self) -> None:
        self.miner.cancel()

    def calculate_total_amount(self, blockchain_address: str) -> float:
        return calculate_total_amount(self.chain, blockchain_address)

    def get_balance(self, blockchain_address: str) -> float:
        return self.calculate_total_amount(blockchain_address)

    def valid_chain(self, chain: list[Block] | None = None) -> ValidationResult:
        return valid_chain(self.chain if chain is None else chain, self.difficulty)

    def is_valid(self) -> ValidationResult:
        result = self.valid_chain()
        logger.info(
            {"action": "is_valid", "valid": result.valid, "reason": result.reason}
        )
        return result
