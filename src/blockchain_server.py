import logging

import uvicorn
from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from blockchain import MINING_DIFFICULTY, MINING_REWARD, BlockChain
from models import (
    BlockChainCache,
    PostMineRequest,
    PostTransactionRequest,
    Transaction,
    TransactionError,
)
from wallet import Wallet

logger = logging.getLogger(__name__)

app = FastAPI()
app.state.difficulty = MINING_DIFFICULTY
app.state.mining_reward = MINING_REWARD
app.state.workers = 1
app.state.strict = False
cache = BlockChainCache()


def get_blockchain() -> BlockChain:
    cached_blockchain = cache.blockchain
    if not cached_blockchain:
        miners_wallet = Wallet()
        cache.blockchain = BlockChain(
            difficulty=app.state.difficulty,
            mining_reward=app.state.mining_reward,
            blockchain_address=miners_wallet.blockchain_address,
            strict=app.state.strict,
            workers=app.state.workers,
        )

    return cache.blockchain


@app.get("/")
def check_connect():
    return {"connection": True}


@app.get("/chain")
def get_chain():
    block_chain = get_blockchain()
    response = {"chain": block_chain.chain, "length": len(block_chain.chain)}
    return response


@app.get("/transactions")
def get_transactions():
    block_chain = get_blockchain()
    transactions = block_chain.transaction_pool
    response = {"transactions": transactions, "length": len(transactions)}
    return response


@app.post("/transactions")
def post_transactions(body: PostTransactionRequest):
    block_chain = get_blockchain()

    try:
        block_chain.add_transaction(
            Transaction(
                sender=body.sender,
                receiver=body.receiver,
                amount=body.amount,
            )
        )
    except (TransactionError, ValidationError) as ex:
        return JSONResponse(
            {"message": "fail", "error": str(ex)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    return JSONResponse({"message": "success"}, status_code=status.HTTP_201_CREATED)


@app.post("/mine")
def mine(body: PostMineRequest | None = None):
    block_chain = get_blockchain()
    miner_address = body.miner_address if body else None
    block = block_chain.mining(miner_address)
    return {"message": "success", "block": block}


@app.get("/amount")
def get_total_amount(blockchain_address: str):
    return {"amount": get_blockchain().calculate_total_amount(blockchain_address)}


@app.get("/valid")
def get_valid():
    return get_blockchain().is_valid()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("-p", "--port", default=5000, type=int)
    parser.add_argument("-d", "--difficulty", default=MINING_DIFFICULTY, type=int)
    parser.add_argument("-r", "--reward", default=MINING_REWARD, type=float)
    parser.add_argument("-w", "--workers", default=1, type=int)
    parser.add_argument("--strict", action="store_true")

    args = parser.parse_args()

    app.state.difficulty = args.difficulty
    app.state.mining_reward = args.reward
    app.state.workers = args.workers
    app.state.strict = args.strict

    block_chain = get_blockchain()
    logger.info(
        {"action": "start", "port": args.port, "miner": block_chain.blockchain_address}
    )
    uvicorn.run(app, host="0.0.0.0", port=args.port)
