"""Vector stores for indexed knowledge chunks.

Two implementations of the same async interface:
- InMemoryVectorStore: process-local, used for tests and ephemeral sessions
- ChromaVectorStore: persistent storage on disk via ChromaDB
"""

import asyncio
from pathlib import Path
from typing import Any, Protocol

import chromadb
from chromadb.config import Settings

from ai_nexus.config import Config
from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import StorageError
from ai_nexus.models import VectorChunk
from ai_nexus.utils.logging import get_logger

logger = get_logger(__name__)


class VectorStore(Protocol):
    """Persists, loads, and deletes chunks keyed by source id."""

    async def save_chunks(self, chunks: list[VectorChunk]) -> None: ...

    async def get_chunks_by_source(self, source_id: str) -> list[VectorChunk]: ...

    async def delete_chunks_by_source(self, source_id: str) -> None: ...


class InMemoryVectorStore:
    """Dictionary-backed vector store."""

    def __init__(self) -> None:
        self._chunks: dict[str, list[VectorChunk]] = {}
        self._lock = asyncio.Lock()

    async def save_chunks(self, chunks: list[VectorChunk]) -> None:
        async with self._lock:
            for chunk in chunks:
                self._chunks.setdefault(chunk.source_id, []).append(chunk)

    async def get_chunks_by_source(self, source_id: str) -> list[VectorChunk]:
        async with self._lock:
            return list(self._chunks.get(source_id, []))

    async def delete_chunks_by_source(self, source_id: str) -> None:
        async with self._lock:
            self._chunks.pop(source_id, None)

    def count(self) -> int:
        return sum(len(chunks) for chunks in self._chunks.values())


class ChromaVectorStore:
    """ChromaDB-backed vector store.

    Chunks keep their document position in metadata so loads return them in
    the order they were indexed. ChromaDB calls are blocking and run in a
    worker thread.
    """

    COLLECTION_NAME = "ai_nexus_chunks"

    def __init__(
        self,
        persist_directory: Path | None = None,
        client: Any | None = None,
        collection_name: str = COLLECTION_NAME,
    ):
        """Initialize vector store.

        Args:
            persist_directory: Directory for ChromaDB persistence
            client: Pre-built ChromaDB client (e.g. chromadb.EphemeralClient())
            collection_name: Collection holding the chunks
        """
        if client is None:
            if persist_directory is None:
                msg = "ChromaVectorStore needs a persist_directory or a client"
                raise StorageError(msg, error_code=ErrorCode.STO_WRITE_FAILED.value)
            persist_directory.mkdir(parents=True, exist_ok=True)
            client = chromadb.PersistentClient(
                path=str(persist_directory),
                settings=Settings(anonymized_telemetry=False),
            )
        self.client = client
        self.collection = self.client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )
        logger.info(
            "vector_store_initialized",
            persist_directory=str(persist_directory) if persist_directory else None,
            collection=collection_name,
            existing_count=self.collection.count(),
        )

    async def save_chunks(self, chunks: list[VectorChunk]) -> None:
        if not chunks:
            return
        try:
            await asyncio.to_thread(self._add, chunks)
        except Exception as e:
            msg = f"Failed to save {len(chunks)} chunks"
            raise StorageError(
                msg,
                error_code=ErrorCode.STO_WRITE_FAILED.value,
                context={"source_id": chunks[0].source_id},
            ) from e
        logger.debug("chunks_saved", count=len(chunks), source_id=chunks[0].source_id)

    def _add(self, chunks: list[VectorChunk]) -> None:
        self.collection.add(
            ids=[c.id for c in chunks],
            embeddings=[c.embedding for c in chunks],
            documents=[c.content for c in chunks],
            metadatas=[
                {"source_id": c.source_id, "position": position}
                for position, c in enumerate(chunks)
            ],
        )

    async def get_chunks_by_source(self, source_id: str) -> list[VectorChunk]:
        try:
            results = await asyncio.to_thread(
                self.collection.get,
                where={"source_id": {"$eq": source_id}},
                include=["documents", "embeddings", "metadatas"],
            )
        except Exception as e:
            msg = f"Failed to load chunks for source {source_id}"
            raise StorageError(
                msg,
                error_code=ErrorCode.STO_READ_FAILED.value,
                context={"source_id": source_id},
            ) from e

        ids = results.get("ids") or []
        documents = results.get("documents")
        embeddings = results.get("embeddings")
        metadatas = results.get("metadatas")

        rows = []
        for i, chunk_id in enumerate(ids):
            metadata = metadatas[i] if metadatas is not None else {}
            rows.append(
                (
                    int((metadata or {}).get("position", i)),
                    VectorChunk(
                        id=chunk_id,
                        source_id=source_id,
                        content=documents[i] if documents is not None else "",
                        embedding=[float(v) for v in embeddings[i]]
                        if embeddings is not None
                        else [],
                    ),
                )
            )
        rows.sort(key=lambda row: row[0])
        return [chunk for _, chunk in rows]

    async def delete_chunks_by_source(self, source_id: str) -> None:
        try:
            await asyncio.to_thread(
                self.collection.delete, where={"source_id": {"$eq": source_id}}
            )
        except Exception as e:
            msg = f"Failed to delete chunks for source {source_id}"
            raise StorageError(
                msg,
                error_code=ErrorCode.STO_DELETE_FAILED.value,
                context={"source_id": source_id},
            ) from e


def build_vector_store(config: Config) -> VectorStore:
    """Create the vector store selected by ``config.vector_store``."""
    if config.vector_store == "chroma":
        return ChromaVectorStore(persist_directory=config.chroma_path)
    return InMemoryVectorStore()
