import argparse

from blockchain import BlockChain
from models import Transaction
from utils import pprint

ADDRESSES = ["Alice", "Bob", "Charlie", "Miner1"]


def report_progress(nonce: int) -> None:
    print(f"Nonce: {nonce}", flush=True)


def run(difficulty: int, mining_reward: float) -> BlockChain:
    block_chain = BlockChain(difficulty=difficulty, mining_reward=mining_reward)
    block_chain.miner.on_progress = report_progress

    print("Adding transactions...")
    block_chain.create_transaction("Alice", "Bob", 50.0)
    block_chain.create_transaction("Bob", "Charlie", 25.0)

    print("Mining Block #1...")
    block_chain.mine_pending_transactions("Miner1")

    print("Adding more transactions...")
    block_chain.create_transaction("Charlie", "Alice", 10.0)
    block_chain.create_transaction("Alice", "Miner1", 5.0)

    print("Mining Block #2...")
    block_chain.mine_pending_transactions("Miner1")

    pprint(block_chain.chain)

    print("Account Balances:")
    for address in ADDRESSES:
        print(f"{address}: {block_chain.get_balance(address)} coins")

    print("Validating blockchain...")
    result = block_chain.is_valid()
    print("Blockchain is valid!" if result else f"Blockchain is invalid: {result.reason}")

    print("Attempting to tamper with blockchain...")
    tampered = block_chain.chain[1].transactions[0]
    block_chain.chain[1].transactions[0] = Transaction(
        sender=tampered.sender,
        receiver=tampered.receiver,
        amount=1000.0,
        timestamp=tampered.timestamp,
    )
    print("Changed transaction amount in Block #1")

    result = block_chain.is_valid()
    if result:
        print("Blockchain is still valid!")
    else:
        print(f"Tampering detected at Block #{result.index}: {result.reason.value}")

    return block_chain


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("-d", "--difficulty", default=4, type=int)
    parser.add_argument("-r", "--reward", default=100.0, type=float)

    args = parser.parse_args()
    run(args.difficulty, args.reward)
