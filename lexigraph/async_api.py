"""
Async API for concurrent similarity queries.

Runs VectorSpaceModel queries in a thread pool so an event loop can serve
several classification requests at once. The model's cache is thread-safe and
single-flight, so concurrent first queries share one computation of each
corpus statistic.

Example:
    >>> async def classify(texts):
    ...     async with AsyncVectorSpaceModel(model, max_workers=4) as async_model:
    ...         return await async_model.batch_similar_documents_async(texts)
    >>> results = asyncio.run(classify(["extra time goal", "interest rates"]))
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List

from .engine import VectorSpaceModel
from .results import RankedList, SimilarityMatrix, SimilarityResult
from .validation import validate_positive_int

logger = logging.getLogger(__name__)


class AsyncVectorSpaceModel:
    """
    Async wrapper around a VectorSpaceModel.

    Attributes:
        model: The wrapped model
        max_workers: Worker threads in the executor
    """

    def __init__(self, model: VectorSpaceModel, max_workers: int = 4):
        """
        Args:
            model: VectorSpaceModel to wrap
            max_workers: Maximum number of worker threads (default: 4)

        Raises:
            ValueError: If max_workers < 1
        """
        validate_positive_int(max_workers, "max_workers")
        self.model = model
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    async def similar_documents_async(self, text: str) -> SimilarityResult:
        """Run similar_document_map_for_vector in the executor."""
        return await self._run(self.model.similar_document_map_for_vector, text)

    async def similar_classes_async(self, class_name: str) -> SimilarityResult:
        """Run similar_document_map_for_class in the executor."""
        return await self._run(self.model.similar_document_map_for_class, class_name)

    async def phrases_for_class_async(self, class_name: str) -> RankedList:
        return await self._run(self.model.phrases_for_class, class_name)

    async def similarity_matrix_async(self) -> SimilarityMatrix:
        return await self._run(self.model.cosine_similarity_matrix)

    async def batch_similar_documents_async(
        self,
        texts: List[str],
        concurrency: int = 4
    ) -> Dict[str, SimilarityResult]:
        """
        Classify several texts concurrently.

        Args:
            texts: Input texts
            concurrency: Maximum queries in flight at once (default: 4)

        Returns:
            Dict mapping each text to its SimilarityResult

        Raises:
            ValueError: If texts is empty or concurrency < 1
        """
        if not texts:
            raise ValueError("texts list must not be empty")
        validate_positive_int(concurrency, "concurrency")

        sem = asyncio.Semaphore(concurrency)

        async def classify_with_semaphore(text: str) -> SimilarityResult:
            async with sem:
                return await self.similar_documents_async(text)

        results = await asyncio.gather(*(classify_with_semaphore(text) for text in texts))
        logger.debug(f"Classified {len(texts)} texts with concurrency {concurrency}")
        return {text: result for text, result in zip(texts, results)}

    async def close(self) -> None:
        """Shut down the executor, waiting for running queries."""
        self._executor.shutdown(wait=True)

    async def __aenter__(self) -> 'AsyncVectorSpaceModel':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
