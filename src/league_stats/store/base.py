"""Document store contract consumed by the stats services."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

from ..errors import StoreError
from ..utils.batching import chunked

FilterOp = Literal["==", "in", ">=", "<="]
FILTER_OPS = ("==", "in", ">=", "<=")


@dataclass(frozen=True)
class Filter:
    """Single field predicate; several filters on one query are ANDed."""

    field: str
    op: FilterOp
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPS:
            raise StoreError(f"Unsupported filter operator: {self.op!r}")


@dataclass
class Document:
    """A stored record: its id plus its field values."""

    id: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        """Flat mapping including the id, ready for model validation."""
        return {"id": self.id, **self.data}


class WriteBatch(ABC):
    """Multi-document writes committed atomically, bounded in size."""

    def __init__(self, limit: int):
        self._limit = limit
        self._ops: List[Tuple[str, str, str, Optional[Dict[str, Any]]]] = []
        self._committed = False

    def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> "WriteBatch":
        self._stage(("update", collection, doc_id, dict(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._stage(("delete", collection, doc_id, None))
        return self

    def __len__(self) -> int:
        return len(self._ops)

    def _stage(self, op: Tuple[str, str, str, Optional[Dict[str, Any]]]) -> None:
        if self._committed:
            raise StoreError("Write batch already committed")
        if len(self._ops) >= self._limit:
            raise StoreError(f"Write batch limit of {self._limit} operations exceeded")
        self._ops.append(op)

    async def commit(self) -> int:
        """Apply every staged operation in one transaction; returns the op count."""
        if self._committed:
            raise StoreError("Write batch already committed")
        count = await self._apply(list(self._ops))
        self._committed = True
        return count

    @abstractmethod
    async def _apply(self, ops: List[Tuple[str, str, str, Optional[Dict[str, Any]]]]) -> int:
        """Backend-specific atomic application of ``ops``."""


class DocumentStore(ABC):
    """Collection-oriented document store.

    Implementations generate ids on ``add``, maintain ``created_at`` and
    ``updated_at`` timestamps, return query results in creation order and
    enforce the ``in`` filter cardinality limit.
    """

    def __init__(self, *, in_query_limit: int = 10, write_batch_limit: int = 500):
        self.in_query_limit = in_query_limit
        self.write_batch_limit = write_batch_limit

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Fetch one document, or None when it does not exist."""

    @abstractmethod
    async def query(self, collection: str, *filters: Filter,
                    limit: Optional[int] = None) -> List[Document]:
        """Documents matching every filter."""

    @abstractmethod
    async def add(self, collection: str, data: Mapping[str, Any]) -> Document:
        """Insert a document under a generated id."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str,
                     data: Mapping[str, Any]) -> Optional[Document]:
        """Merge ``data`` into an existing document; None when it does not exist."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Remove a document; False when it did not exist."""

    @abstractmethod
    def batch(self) -> WriteBatch:
        """Start a new atomic write batch."""

    async def ping(self) -> bool:
        """Cheap connectivity check."""
        return True

    async def close(self) -> None:
        """Release backend resources."""

    async def update_all(self, collection: str, doc_ids: Sequence[str],
                         data: Mapping[str, Any]) -> int:
        """Apply the same partial update to many documents.

        Work is split into batches of at most ``write_batch_limit`` operations,
        each committed atomically and applied in order. A failure part way
        leaves earlier batches applied; re-running finishes the job.
        """
        applied = 0
        for chunk in chunked(list(doc_ids), self.write_batch_limit):
            batch = self.batch()
            for doc_id in chunk:
                batch.update(collection, doc_id, data)
            applied += await batch.commit()
        return applied

    async def delete_all(self, collection: str, doc_ids: Sequence[str]) -> int:
        """Delete many documents in sequential atomic batches."""
        removed = 0
        for chunk in chunked(list(doc_ids), self.write_batch_limit):
            batch = self.batch()
            for doc_id in chunk:
                batch.delete(collection, doc_id)
            removed += await batch.commit()
        return removed

    def check_in_filter(self, values: List[Any]) -> None:
        if len(values) > self.in_query_limit:
            raise StoreError(
                f"'in' filter accepts at most {self.in_query_limit} values (got {len(values)})"
            )
