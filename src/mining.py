import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from models import Block, MiningCancelled
from utils import hash_block, valid_proof

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 10000
CHUNK_SIZE = 5000

ProgressCallback = Callable[[int], None]


@dataclass
class SearchStats:
    attempts: int = 0


def proof_of_work(
    block: Block,
    difficulty: int,
    cancel: threading.Event | None = None,
    on_progress: ProgressCallback | None = None,
    stats: SearchStats | None = None,
) -> Block:
    """Search nonces upward from 0 and return the mined copy of ``block``.

    The first nonce whose hash carries ``difficulty`` leading zeros wins.
    ``cancel`` is checked before every attempt.
    """
    nonce = 0
    while True:
        if cancel is not None and cancel.is_set():
            raise MiningCancelled(nonce)

        candidate = block.model_copy(update={"nonce": nonce})
        guess_hash = hash_block(candidate)
        if stats is not None:
            stats.attempts += 1
        if valid_proof(guess_hash, difficulty):
            return candidate.model_copy(update={"hash": guess_hash})

        nonce += 1
        if on_progress is not None and nonce % PROGRESS_INTERVAL == 0:
            on_progress(nonce)


class _SearchRound:
    """Shared state of one round of chunks scanned side by side."""

    def __init__(self, cancel: threading.Event) -> None:
        self.cancel = cancel
        self.lock = threading.Lock()
        self.lowest_hit: int | None = None
        self.attempts = 0

    def should_stop(self, chunk: int) -> bool:
        if self.cancel.is_set():
            return True
        with self.lock:
            return self.lowest_hit is not None and self.lowest_hit < chunk

    def record_hit(self, chunk: int) -> None:
        with self.lock:
            if self.lowest_hit is None or chunk < self.lowest_hit:
                self.lowest_hit = chunk

    def record_attempts(self, attempts: int) -> None:
        with self.lock:
            self.attempts += attempts


def _scan_chunk(
    block: Block,
    difficulty: int,
    chunk: int,
    start: int,
    stop: int,
    search_round: _SearchRound,
) -> tuple[int, str] | None:
    attempts = 0
    try:
        for nonce in range(start, stop):
            if search_round.should_stop(chunk):
                return None
            guess_hash = hash_block(block.model_copy(update={"nonce": nonce}))
            attempts += 1
            if valid_proof(guess_hash, difficulty):
                search_round.record_hit(chunk)
                return nonce, guess_hash
        return None
    finally:
        search_round.record_attempts(attempts)


def parallel_proof_of_work(
    block: Block,
    difficulty: int,
    workers: int,
    cancel: threading.Event | None = None,
    on_progress: ProgressCallback | None = None,
    chunk_size: int = CHUNK_SIZE,
    stats: SearchStats | None = None,
) -> Block:
    """Split the nonce space into rounds of ``workers`` contiguous chunks.

    A hit stops only the chunks above it, so the smallest satisfying nonce
    always wins and the result matches ``proof_of_work``.
    """
    cancel = cancel or threading.Event()
    base = 0
    with ThreadPoolExecutor(max_workers=workers) as executor:
        while True:
            if cancel.is_set():
                raise MiningCancelled(base)

            search_round = _SearchRound(cancel)
            futures = [
                executor.submit(
                    _scan_chunk,
                    block,
                    difficulty,
                    chunk,
                    base + chunk * chunk_size,
                    base + (chunk + 1) * chunk_size,
                    search_round,
                )
                for chunk in range(workers)
            ]
            hits = [hit for hit in (future.result() for future in futures) if hit]
            if stats is not None:
                stats.attempts += search_round.attempts

            if cancel.is_set():
                raise MiningCancelled(base)
            if hits:
                nonce, guess_hash = min(hits)
                return block.model_copy(update={"nonce": nonce, "hash": guess_hash})

            previous = base
            base += workers * chunk_size
            if on_progress is not None and base // PROGRESS_INTERVAL > previous // PROGRESS_INTERVAL:
                on_progress(base)


class Miner:
    difficulty: int
    workers: int
    on_progress: ProgressCallback | None
    cancel_event: threading.Event

    def __init__(
        self,
        difficulty: int,
        workers: int = 1,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.difficulty = difficulty
        self.workers = max(1, workers)
        self.on_progress = on_progress or self._log_progress
        self.cancel_event = threading.Event()

    def _log_progress(self, nonce: int) -> None:
        logger.debug({"action": "mining", "status": "searching", "nonce": nonce})

    def cancel(self) -> None:
        self.cancel_event.set()

    def mine(self, draft: Block) -> Block:
        """Mine ``draft``; a pending cancel request is consumed by this call."""
        stats = SearchStats()
        start_time = time.perf_counter()
        try:
            if self.workers == 1:
                block = proof_of_work(
                    draft,
                    self.difficulty,
                    self.cancel_event,
                    self.on_progress,
                    stats=stats,
                )
            else:
                block = parallel_proof_of_work(
                    draft,
                    self.difficulty,
                    self.workers,
                    self.cancel_event,
                    self.on_progress,
                    stats=stats,
                )
        except MiningCancelled as ex:
            logger.error(
                {
                    "action": "mining",
                    "status": "cancelled",
                    "index": draft.index,
                    "nonce": ex.nonce,
                    "attempts": stats.attempts,
                }
            )
            raise
        finally:
            self.cancel_event.clear()

        elapsed = time.perf_counter() - start_time
        logger.info(
            {
                "action": "mining",
                "status": "found",
                "index": block.index,
                "nonce": block.nonce,
                "hash": block.hash,
                "attempts": stats.attempts,
                "seconds": round(elapsed, 3),
                "hash_rate": round(stats.attempts / elapsed) if elapsed else None,
            }
        )
        return block
