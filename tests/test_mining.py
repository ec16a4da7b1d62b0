import threading

import pytest

from mining import (
    PROGRESS_INTERVAL,
    Miner,
    SearchStats,
    parallel_proof_of_work,
    proof_of_work,
)
from models import Block, MiningCancelled, Transaction
from utils import hash_block, valid_proof


@pytest.fixture
def draft() -> Block:
    return Block(
        index=1,
        timestamp=1700000000,
        transactions=[
            Transaction(sender="Alice", receiver="Bob", amount=50.0, timestamp=1700000000)
        ],
        previous_hash="0" * 64,
        difficulty=2,
    )


def test_proof_of_work_finds_smallest_nonce(draft):
    block = proof_of_work(draft, 2)

    assert block.hash == hash_block(block)
    assert valid_proof(block.hash, 2)
    for nonce in range(block.nonce):
        assert not valid_proof(hash_block(draft.model_copy(update={"nonce": nonce})), 2)


def test_proof_of_work_leaves_draft_untouched(draft):
    proof_of_work(draft, 1)
    assert draft.nonce == 0
    assert draft.hash == ""


def test_difficulty_zero_accepts_first_nonce(draft):
    block = proof_of_work(draft, 0)
    assert block.nonce == 0
    assert block.hash == hash_block(draft)


@pytest.mark.parametrize("workers", [2, 4])
def test_parallel_search_matches_sequential(draft, workers):
    sequential = proof_of_work(draft, 2)
    parallel = parallel_proof_of_work(draft, 2, workers, chunk_size=16)

    assert parallel.nonce == sequential.nonce
    assert parallel.hash == sequential.hash


def test_cancel_before_search(draft):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(MiningCancelled) as exc_info:
        proof_of_work(draft, 2, cancel=cancel)
    assert exc_info.value.nonce == 0

    with pytest.raises(MiningCancelled):
        parallel_proof_of_work(draft, 2, 2, cancel=cancel)


def test_progress_reported_and_search_cancelled(draft):
    cancel = threading.Event()
    reported = []

    def on_progress(nonce):
        reported.append(nonce)
        cancel.set()

    with pytest.raises(MiningCancelled) as exc_info:
        proof_of_work(draft, 64, cancel=cancel, on_progress=on_progress)

    assert reported == [PROGRESS_INTERVAL]
    assert exc_info.value.nonce == PROGRESS_INTERVAL


def test_miner_mine(draft):
    miner = Miner(difficulty=2, workers=1)
    block = miner.mine(draft)
    assert block.hash.startswith("00")
    assert block.nonce == proof_of_work(draft, 2).nonce


def test_miner_consumes_pending_cancel(draft):
    miner = Miner(difficulty=1)
    miner.cancel()

    with pytest.raises(MiningCancelled):
        miner.mine(draft)

    assert not miner.cancel_event.is_set()
    assert miner.mine(draft).hash.startswith("0")


def test_miner_workers_floor():
    assert Miner(difficulty=1, workers=0).workers == 1


def test_sequential_attempts_counted(draft):
    stats = SearchStats()
    block = proof_of_work(draft, 2, stats=stats)
    assert stats.attempts == block.nonce + 1


def test_parallel_attempts_cover_every_scanned_nonce(draft):
    stats = SearchStats()
    block = parallel_proof_of_work(draft, 2, 3, chunk_size=8, stats=stats)
    assert stats.attempts >= block.nonce + 1


def test_miner_with_workers_matches_single_worker(draft):
    single = Miner(difficulty=2).mine(draft)
    parallel = Miner(difficulty=2, workers=3).mine(draft)

    assert parallel.nonce == single.nonce
    assert parallel.hash == single.hash
