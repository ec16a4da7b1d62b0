import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def now() -> int:
    return int(time.time())


class LedgerError(Exception):
    pass


class TransactionError(LedgerError):
    """Raised for a rejected transaction when the ledger runs in strict mode."""


class MiningCancelled(LedgerError):
    """Raised when a nonce search is stopped before finding a proof."""

    def __init__(self, nonce: int) -> None:
        super().__init__(f"mining cancelled at nonce {nonce}")
        self.nonce = nonce


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True, ser_json_inf_nan="strings")

    sender: str
    receiver: str
    amount: float
    timestamp: int = Field(default_factory=now)

    @field_validator("sender", "receiver")
    @classmethod
    def encodable_address(cls, value: str) -> str:
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as ex:
            raise ValueError(f"address is not valid UTF-8: {value!r}") from ex
        return value


class Block(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    timestamp: int = Field(default_factory=now)
    transactions: list[Transaction]
    previous_hash: str
    hash: str = ""
    nonce: int = Field(default=0, ge=0)
    difficulty: int = Field(default=0, ge=0)


class HashPayload(BaseModel):
    """Canonical content of a block as fed to SHA-256.

    Field order is part of the encoding. Bump ``version`` when it changes.
    """

    model_config = ConfigDict(ser_json_inf_nan="strings")

    version: int
    index: int
    timestamp: int
    transactions: list[Transaction]
    previous_hash: str
    nonce: int


class InvalidReason(str, Enum):
    HASH_MISMATCH = "hash_mismatch"
    BROKEN_LINK = "broken_link"
    PROOF_OF_WORK_NOT_MET = "proof_of_work_not_met"
    EMPTY_CHAIN = "empty_chain"


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    reason: InvalidReason | None = None
    index: int | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def invalid(cls, reason: InvalidReason, index: int) -> "ValidationResult":
        return cls(valid=False, reason=reason, index=index)

    def __bool__(self) -> bool:
        return self.valid


class BlockChainCache(BaseModel):
    blockchain: Any = None


class PostTransactionRequest(BaseModel):
    sender: str
    receiver: str
    amount: float


class PostMineRequest(BaseModel):
    miner_address: str | None = None
