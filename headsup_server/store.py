"""
Document store contract used by the deck cache.

The deck cache only needs four things from a backing store: whole-document
reads, whole-document replaces, an array-union update on an existing
document, and an atomic read-modify-write over a named set of keys.
"""

from __future__ import annotations
import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .errors import DocumentNotFound, TransactionConflict

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


@dataclass(frozen=True)
class SetUnion:
    """Merge-write: union `values` into the list stored at `field`, creating the document if needed."""
    field: str
    values: Tuple[str, ...]

    def __init__(self, field: str, values: Iterable[str]):
        object.__setattr__(self, 'field', field)
        object.__setattr__(self, 'values', tuple(values))


Write = Union[Document, SetUnion]
# Receives {key: document or None}; returns ({key: write}, result)
TransactionFn = Callable[[Dict[str, Optional[Document]]], Tuple[Dict[str, Write], Any]]


class DeckKeys:
    def __init__(self, namespace: str = 'heads-up-v1'):
        self.namespace = namespace

    def master(self, deck_id: str) -> str:
        return f"artifacts/{self.namespace}/public/data/decks/{deck_id}"

    def user(self, user_id: str, deck_id: str) -> str:
        return f"artifacts/{self.namespace}/users/{user_id}/userDecks/{deck_id}"


class DocumentStore(ABC):

    @abstractmethod
    async def read(self, key: str) -> Optional[Document]:
        """Return a copy of the document at `key`, or None if absent."""

    @abstractmethod
    async def write(self, key: str, doc: Document) -> None:
        """Replace the document at `key`."""

    @abstractmethod
    async def add_to_set(self, key: str, field: str, values: Sequence[str]) -> None:
        """
        Union `values` into the list at `field` of an existing document.

        Raises:
            DocumentNotFound: if nothing is stored at `key`
        """

    @abstractmethod
    async def transaction(self, keys: Sequence[str], fn: TransactionFn) -> Any:
        """
        Atomically read `keys`, compute writes with `fn` and commit them.

        All writes commit together or none do. Conflicting concurrent commits
        cause `fn` to be re-run against fresh reads.

        Raises:
            TransactionConflict: if retries are exhausted
        """

    async def close(self) -> None:
        pass


def _union_into(existing: List[str], values: Iterable[str]) -> List[str]:
    merged = list(existing)
    present = set(merged)
    for v in values:
        if v not in present:
            merged.append(v)
            present.add(v)
    return merged


def apply_write(current: Optional[Document], write: Write) -> Document:
    if isinstance(write, SetUnion):
        doc = copy.deepcopy(current) if current else {}
        doc[write.field] = _union_into(doc.get(write.field) or [], write.values)
        return doc
    return copy.deepcopy(write)


class InMemoryDocumentStore(DocumentStore):
    """Process-local store with per-key versions and compare-and-set commits."""

    def __init__(self, max_attempts: int = 5):
        self.max_attempts = max_attempts
        self._docs: Dict[str, Document] = {}
        self._versions: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def read(self, key: str) -> Optional[Document]:
        async with self._lock:
            doc = self._docs.get(key)
            return copy.deepcopy(doc) if doc is not None else None

    async def write(self, key: str, doc: Document) -> None:
        async with self._lock:
            self._put(key, copy.deepcopy(doc))

    async def add_to_set(self, key: str, field: str, values: Sequence[str]) -> None:
        async with self._lock:
            if key not in self._docs:
                raise DocumentNotFound(key)
            self._put(key, apply_write(self._docs[key], SetUnion(field, values)))

    async def transaction(self, keys: Sequence[str], fn: TransactionFn) -> Any:
        keys = list(keys)
        for attempt in range(1, self.max_attempts + 1):
            async with self._lock:
                versions = {k: self._versions.get(k, 0) for k in keys}
                snapshot = {k: copy.deepcopy(self._docs.get(k)) for k in keys}

            # Let other tasks run between read and commit, like a remote round trip would
            await asyncio.sleep(0)
            writes, result = fn(snapshot)

            async with self._lock:
                if all(self._versions.get(k, 0) == v for k, v in versions.items()):
                    for k, w in writes.items():
                        self._put(k, apply_write(self._docs.get(k), w))
                    return result
            logger.info(f"[Store] Transaction conflict on {keys} (attempt {attempt}/{self.max_attempts}), retrying")
        raise TransactionConflict(keys, self.max_attempts)

    def _put(self, key: str, doc: Document) -> None:
        self._docs[key] = doc
        self._versions[key] = self._versions.get(key, 0) + 1

    def version(self, key: str) -> int:
        return self._versions.get(key, 0)
