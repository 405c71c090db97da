"""RAG (Retrieval-Augmented Generation) module for ai-nexus.

Components:
- chunk_text: Splits documents into overlapping fixed-size windows
- cosine_similarity: Ranks chunk embeddings against a query embedding
- HttpEmbeddingClient: Generates embeddings via Gemini or OpenAI-compatible APIs
- InMemoryVectorStore / ChromaVectorStore: Chunk storage keyed by source id
- RAGService: Indexing and retrieval API
"""

from .chunker import chunk_text
from .embeddings import EmbeddingClient, HttpEmbeddingClient
from .service import CONTEXT_SEPARATOR, RAGService
from .similarity import cosine_similarity
from .vector_store import (
    ChromaVectorStore,
    InMemoryVectorStore,
    VectorStore,
    build_vector_store,
)

__all__ = [
    "CONTEXT_SEPARATOR",
    "ChromaVectorStore",
    "EmbeddingClient",
    "HttpEmbeddingClient",
    "InMemoryVectorStore",
    "RAGService",
    "VectorStore",
    "build_vector_store",
    "chunk_text",
    "cosine_similarity",
]
