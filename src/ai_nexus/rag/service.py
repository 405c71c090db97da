"""RAG Service - indexing and retrieval over a character's knowledge sources.

Indexing reads a document, splits it into overlapping chunks, embeds each
chunk in order, and persists the batch only after every chunk succeeded.
Retrieval embeds the query, ranks the chunks of the character's linked
sources by cosine similarity, and joins the best matches into a context
string for the system prompt.
"""

import asyncio
import mimetypes
from collections.abc import Callable
from pathlib import Path

from ai_nexus.config import Config
from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import IndexingError
from ai_nexus.models import (
    Character,
    EmbeddingConfig,
    ScoredChunk,
    Source,
    UploadedFile,
    VectorChunk,
)
from ai_nexus.utils.logging import get_logger

from .chunker import chunk_text, validate_chunking
from .embeddings import EmbeddingClient
from .similarity import cosine_similarity
from .vector_store import VectorStore

logger = get_logger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"

ProgressCallback = Callable[[str], None]


def _noop_progress(_: str) -> None:
    return None


class RAGService:
    """High-level RAG API used by the chat orchestrator and the CLI."""

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        vector_store: VectorStore,
        chunk_size: int = 1000,
        overlap: int = 200,
    ):
        """Initialize RAG service.

        Args:
            embedding_client: Client used for chunk and query embeddings
            vector_store: Storage for indexed chunks
            chunk_size: Chunk window length in characters
            overlap: Characters shared by consecutive chunks

        Raises:
            ConfigError: If chunk_size <= overlap or overlap < 0
        """
        validate_chunking(chunk_size, overlap)
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.chunk_size = chunk_size
        self.overlap = overlap

    @classmethod
    def from_config(
        cls,
        config: Config,
        embedding_client: EmbeddingClient,
        vector_store: VectorStore,
    ) -> "RAGService":
        return cls(
            embedding_client,
            vector_store,
            chunk_size=config.chunking.chunk_size,
            overlap=config.chunking.overlap,
        )

    async def process_and_index_file(
        self,
        file: Path | UploadedFile,
        embedding_config: EmbeddingConfig,
        on_progress: ProgressCallback | None = None,
    ) -> Source:
        """Chunk, embed, and store a document.

        Args:
            file: Path on disk or an in-memory upload
            embedding_config: Embedding backend used for every chunk
            on_progress: Receives a human-readable message per phase

        Returns:
            The new Source; its id keys the stored chunks

        Raises:
            IndexingError: If the file cannot be read or any chunk fails to
                embed; nothing is stored in that case
            StorageError: If the vector store rejects the batch
        """
        progress = on_progress or _noop_progress

        if isinstance(file, UploadedFile):
            file_name, file_type = file.name, file.mime_type
        else:
            file_name = file.name
            file_type = mimetypes.guess_type(file.name)[0] or "text/plain"

        source = Source(file_name=file_name, file_type=file_type)
        logger.info("rag_index_started", source_id=source.id, file=file_name)

        progress(f"Reading file: {file_name}...")
        content = await self._read_file(file)

        progress("Chunking text...")
        text_chunks = chunk_text(content, self.chunk_size, self.overlap)

        vector_chunks: list[VectorChunk] = []
        for i, text in enumerate(text_chunks):
            progress(f"Generating embedding for chunk {i + 1} of {len(text_chunks)}...")
            try:
                embedding = await self.embedding_client.generate_embedding(
                    text, embedding_config
                )
            except Exception as e:
                logger.error(
                    "chunk_embedding_failed",
                    source_id=source.id,
                    chunk=i + 1,
                    total=len(text_chunks),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                msg = f"Failed to process chunk {i + 1}. Check embedding API settings."
                raise IndexingError(
                    msg,
                    chunk_index=i,
                    suggestion="Verify the embedding service, endpoint, and API key",
                    error_code=ErrorCode.RAG_CHUNK_FAILED.value,
                    context={"source_id": source.id, "file": file_name},
                ) from e
            vector_chunks.append(
                VectorChunk(source_id=source.id, content=text, embedding=embedding)
            )
            logger.debug("chunk_embedded", source_id=source.id, chunk=i + 1)

        progress(f"Saving {len(vector_chunks)} vectors to the database...")
        await self.vector_store.save_chunks(vector_chunks)

        logger.info(
            "rag_index_completed",
            source_id=source.id,
            file=file_name,
            chunks=len(vector_chunks),
        )
        return source

    async def _read_file(self, file: Path | UploadedFile) -> str:
        if isinstance(file, UploadedFile):
            return file.content
        try:
            return await asyncio.to_thread(file.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Failed to read file: {file}"
            raise IndexingError(
                msg,
                suggestion="Only UTF-8 text documents can be indexed",
                error_code=ErrorCode.RAG_READ_FAILED.value,
                context={"file": str(file)},
            ) from e

    async def delete_source(self, source_id: str) -> None:
        """Delete every chunk stored for a source."""
        await self.vector_store.delete_chunks_by_source(source_id)
        logger.info("rag_source_deleted", source_id=source_id)

    async def rank_chunks(
        self, query: str, character: Character
    ) -> list[ScoredChunk]:
        """Score all chunks of the character's sources against the query.

        Results are sorted by descending similarity; ties keep load order.
        """
        if not character.embedding_config:
            return []
        query_embedding = await self.embedding_client.generate_embedding(
            query, character.embedding_config
        )

        all_chunks: list[VectorChunk] = []
        for source_id in character.knowledge_source_ids:
            all_chunks.extend(await self.vector_store.get_chunks_by_source(source_id))

        scored = [
            ScoredChunk(
                chunk=chunk,
                similarity=cosine_similarity(query_embedding, chunk.embedding),
            )
            for chunk in all_chunks
        ]
        scored.sort(key=lambda item: item.similarity, reverse=True)
        return scored

    async def find_relevant_context(
        self,
        query: str,
        character: Character,
        top_k: int = 3,
    ) -> str | None:
        """Return the best-matching chunks of the character's knowledge.

        Args:
            query: Text to match (usually the latest user message)
            character: Character whose linked sources are searched
            top_k: Maximum number of chunks to include

        Returns:
            Chunk contents joined by a separator, or None when the character
            has no linked sources, no embedding config, no stored chunks,
            or ``top_k`` is not positive

        Raises:
            ConfigError, EmbeddingError, StorageError: Propagated so the
                caller can report the configuration problem
        """
        if not character.knowledge_source_ids:
            return None
        if top_k <= 0:
            logger.debug("rag_top_k_disabled", character_id=character.id, top_k=top_k)
            return None
        if not character.embedding_config:
            logger.warning(
                "rag_missing_embedding_config",
                character_id=character.id,
            )
            return None

        try:
            scored = await self.rank_chunks(query, character)
        except Exception as e:
            logger.error(
                "rag_retrieval_failed",
                character_id=character.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        if not scored:
            logger.info("rag_no_chunks_found", character_id=character.id)
            return None

        top_chunks = scored[:top_k]
        logger.debug(
            "rag_context_found",
            character_id=character.id,
            chunks=len(top_chunks),
            best_similarity=round(top_chunks[0].similarity, 4),
        )
        return CONTEXT_SEPARATOR.join(item.chunk.content for item in top_chunks)
