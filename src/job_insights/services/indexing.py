"""
Semantic index for harvested jobs, backed by a Chroma collection.

The Chroma client is blocking, so every call runs in a worker thread. The
collection is resolved once per pipeline: reused when it already exists,
created otherwise, tolerating a concurrent creator winning the race.
"""

import asyncio
from typing import Any, Callable, List, Optional, Sequence
from urllib.parse import quote

import chromadb
from chromadb.utils import embedding_functions

from ..config import ConfigurationError, Settings
from ..logging_config import setup_logging
from ..models import JobPosting, SearchHit
from ..utils.urls import index_key

# Create module-specific logger
logger = setup_logging(__name__)

DEFAULT_BATCH_SIZE = 100


class IndexingError(Exception):
    """Raised when the semantic index rejects a request."""

    pass


def entry_id(job: JobPosting) -> str:
    """Index id for a job: its percent-encoded canonical URL."""
    if job.url:
        return index_key(job.url)
    return quote(job.identity_key(), safe="")


class IndexingPipeline:
    """Batches jobs into the semantic index and answers similarity queries."""

    def __init__(
        self,
        client_factory: Callable[[], Any],
        embedding_function: Optional[Any] = None,
        collection_name: str = "jobs-collection",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self._client_factory = client_factory
        self.embedding_function = embedding_function
        self.collection_name = collection_name
        self.batch_size = batch_size
        self.client: Optional[Any] = None
        self._collection: Optional[Any] = None
        self._init_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "IndexingPipeline":
        """Build the production pipeline. A missing OpenAI key is fatal."""
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for the semantic index")

        embedder = embedding_functions.OpenAIEmbeddingFunction(
            api_key=settings.openai_api_key,
            model_name=settings.embedding_model,
        )

        def client_factory():
            logger.info(
                "Initializing Chroma client",
                extra={"chroma_host": settings.chroma_host, "chroma_port": settings.chroma_port},
            )
            return chromadb.HttpClient(host=settings.chroma_host, port=settings.chroma_port)

        return cls(client_factory, embedder, settings.chroma_collection, settings.index_batch_size)

    @classmethod
    async def create(cls, settings: Settings) -> "IndexingPipeline":
        pipeline = cls.from_settings(settings)
        await pipeline.ensure_collection()
        return pipeline

    async def _get_collection(self):
        return await asyncio.to_thread(
            self.client.get_collection,
            name=self.collection_name,
            embedding_function=self.embedding_function,
        )

    async def ensure_collection(self):
        """Resolve the collection exactly once, reusing it when it already exists."""
        async with self._init_lock:
            if self._collection is not None:
                return self._collection

            if self.client is None:
                self.client = await asyncio.to_thread(self._client_factory)

            existing = await asyncio.to_thread(self.client.list_collections)
            # Older clients return Collection objects, newer ones return names
            names = {getattr(col, "name", col) for col in existing}

            if self.collection_name in names:
                collection = await self._get_collection()
                logger.info(f"Connected to existing collection: {self.collection_name}")
            else:
                try:
                    collection = await asyncio.to_thread(
                        self.client.create_collection,
                        name=self.collection_name,
                        embedding_function=self.embedding_function,
                    )
                    logger.info(f"Created new collection: {self.collection_name}")
                except Exception as create_error:
                    logger.warning(
                        "Collection creation failed, assuming a concurrent initializer created it",
                        extra={"collection": self.collection_name, "error": str(create_error)},
                    )
                    try:
                        collection = await self._get_collection()
                    except Exception as get_error:
                        raise IndexingError(
                            f"Failed to initialize collection {self.collection_name}: {create_error}"
                        ) from get_error

            self._collection = collection
            return collection

    async def index(self, records: Sequence[JobPosting]) -> int:
        """Upsert jobs in batches; returns how many were submitted.

        A failing batch raises ``IndexingError``; earlier batches stay indexed.
        """
        if not records:
            logger.info("No jobs to add")
            return 0

        collection = await self.ensure_collection()
        total = len(records)
        for start in range(0, total, self.batch_size):
            batch = list(records[start:start + self.batch_size])
            try:
                await asyncio.to_thread(
                    collection.upsert,
                    ids=[entry_id(job) for job in batch],
                    documents=[job.index_document() for job in batch],
                    metadatas=[job.index_metadata() for job in batch],
                )
            except Exception as e:
                logger.error(
                    "Failed to add batch of jobs to the index",
                    extra={"batch_start": start, "batch_size": len(batch), "error": str(e)},
                )
                raise IndexingError(f"Failed to index jobs {start + 1}-{start + len(batch)}: {e}") from e
            logger.info(f"Added batch of {len(batch)} jobs to the index ({start + 1}-{start + len(batch)}/{total})")
        return total

    async def search(self, query_text: str, top_n: int = 5) -> List[SearchHit]:
        """Nearest jobs to ``query_text``, best first."""
        collection = await self.ensure_collection()
        try:
            results = await asyncio.to_thread(
                collection.query, query_texts=[query_text], n_results=top_n
            )
        except Exception as e:
            logger.error("Failed to search jobs in the index", extra={"error": str(e)})
            raise IndexingError(f"Search failed: {e}") from e

        ids = (results.get("ids") or [[]])[0]
        if not ids:
            return []
        distances = (results.get("distances") or [[None] * len(ids)])[0]
        metadatas = (results.get("metadatas") or [[{}] * len(ids)])[0]

        return [
            SearchHit(
                id=hit_id,
                score=1.0 / (1.0 + distance) if distance is not None else 0.0,
                metadata=dict(metadata or {}),
            )
            for hit_id, distance, metadata in zip(ids, distances, metadatas)
        ]

    async def delete_by_url(self, url: str) -> None:
        collection = await self.ensure_collection()
        try:
            await asyncio.to_thread(collection.delete, ids=[index_key(url)])
        except Exception as e:
            logger.error(f"Failed to delete job with URL {url}", extra={"error": str(e)})
            raise IndexingError(f"Delete failed for {url}: {e}") from e
        logger.info(f"Deleted job with URL: {url}")

    async def count(self) -> int:
        collection = await self.ensure_collection()
        try:
            return await asyncio.to_thread(collection.count)
        except Exception as e:
            logger.error("Failed to get job count from the index", extra={"error": str(e)})
            raise IndexingError(f"Count failed: {e}") from e
