"""
Transaction building for the etcd key-value client.

etcd exposes a single atomic primitive: a list of compare predicates and two
lists of operations. The store evaluates every predicate and then applies
exactly one of the two lists, reporting which one ran.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Sequence, Tuple, TypeVar, Union

T = TypeVar("T")


class CompareResult(Enum):
    """Comparison operator of a predicate."""
    EQUAL = "EQUAL"


class CompareTarget(Enum):
    """Field of the stored entry a predicate compares against."""
    VALUE = "VALUE"


@dataclass(frozen=True)
class PutOp:
    """Store ``value`` under ``key``."""
    key: bytes
    value: bytes = b""


@dataclass(frozen=True)
class DeleteRangeOp:
    """Delete ``[key, range_end)``; an empty ``range_end`` deletes ``key`` only."""
    key: bytes
    range_end: bytes = b""


Mutation = Union[PutOp, DeleteRangeOp]


@dataclass(frozen=True)
class Compare:
    """Predicate holding when the current value at ``key`` equals ``value``."""
    key: bytes
    value: bytes
    result: CompareResult = CompareResult.EQUAL
    target: CompareTarget = CompareTarget.VALUE


@dataclass(frozen=True)
class TxnRequest:
    """A transaction as submitted to the store."""
    compare: Tuple[Compare, ...] = field(default_factory=tuple)
    success: Tuple[Mutation, ...] = field(default_factory=tuple)
    failure: Tuple[Mutation, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TxnResponse:
    """The store's reply: ``succeeded`` is True when the success branch ran."""
    succeeded: bool


def build_conditional(
    predicates: Iterable[Compare],
    on_success: Iterable[Mutation],
    on_failure: Iterable[Mutation] = (),
) -> TxnRequest:
    """
    Build a transaction gated on ``predicates``.

    Args:
        predicates: Equality comparisons which must all hold
        on_success: Mutations applied when every predicate holds
        on_failure: Mutations applied otherwise

    Returns:
        The transaction request
    """
    request = TxnRequest(tuple(predicates), tuple(on_success), tuple(on_failure))
    for op in request.success + request.failure:
        if not isinstance(op, (PutOp, DeleteRangeOp)):
            raise TypeError(f"Unsupported mutation: {op!r}")
    return request


def build_unconditional(mutations: Iterable[Mutation]) -> TxnRequest:
    """
    Build a transaction applying ``mutations`` atomically.

    With no predicates the store always takes the success branch.
    """
    return build_conditional((), mutations, ())


def interpret(response: TxnResponse) -> bool:
    """Return True if the success branch of the transaction was executed."""
    return bool(response.succeeded)


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive batches of at most ``size`` items, in order."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
