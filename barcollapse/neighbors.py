"""Per-barcode distance search, run on the calling thread or fanned out over an executor."""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import List, Optional, Sequence, Set

import numpy as np

from barcollapse.distance import DistanceFunction, get_distance_function
from barcollapse.errors import WorkerFailure


# Chunks submitted per worker, so uneven chunks still balance across the pool
CHUNKS_PER_THREAD = 4


def _distance_chunk(distance_func: DistanceFunction, barcode: str, candidates: Sequence[str]) -> np.ndarray:
    return np.fromiter((distance_func(barcode, c) for c in candidates),
                       dtype=np.int64, count=len(candidates))


class NeighborFinder:
    """Finds the barcodes within an edit distance of one target barcode.

    With num_threads > 1 the comparisons for a single target are split into chunks
    and run on an executor; the caller blocks until all chunks finish. Results are
    identical to the single-threaded path.

    An executor passed in by the caller is used as-is and never shut down here.
    Otherwise, with num_threads > 1, a ThreadPoolExecutor is created at construction
    and released by close(). A closed finder cannot be used again.
    """

    def __init__(self, num_threads: int = 1, executor: Optional[Executor] = None):
        if num_threads < 1:
            raise ValueError(f"num_threads must be at least 1, got {num_threads}")
        self.num_threads = num_threads
        self._owns_executor = executor is None
        self._closed = False
        if executor is None and self.parallel:
            logging.debug(f"Starting distance worker pool with {num_threads} threads")
            executor = ThreadPoolExecutor(max_workers=num_threads)
        self._executor = executor

    @property
    def parallel(self) -> bool:
        return self.num_threads > 1

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
        self._executor = None
        self._closed = True

    def compute_distances(self, barcode: str, candidates: Sequence[str], find_indels: bool) -> np.ndarray:
        """Distance from barcode to every candidate, in candidate order.

        Raises:
            WorkerFailure: if the metric raises for any candidate, or a chunk cannot
                be submitted to the executor.
            RuntimeError: if the finder has been closed.
        """
        if self._closed:
            raise RuntimeError("NeighborFinder is closed")
        candidates = list(candidates)
        if not candidates:
            return np.zeros(0, dtype=np.int64)
        distance_func = get_distance_function(find_indels)

        if not self.parallel:
            try:
                return _distance_chunk(distance_func, barcode, candidates)
            except Exception as e:
                raise WorkerFailure(barcode, str(e)) from e

        num_chunks = min(len(candidates), self.num_threads * CHUNKS_PER_THREAD)
        chunk_size = -(-len(candidates) // num_chunks)
        futures = []
        results: List[np.ndarray] = []
        try:
            for i in range(0, len(candidates), chunk_size):
                futures.append(self._executor.submit(
                    _distance_chunk, distance_func, barcode, candidates[i:i + chunk_size]))
            for future in futures:
                results.append(future.result())
        except Exception as e:
            for future in futures:
                future.cancel()
            raise WorkerFailure(barcode, str(e)) from e
        return np.concatenate(results)

    def find_neighbors(self, barcode: str, candidates: Sequence[str], find_indels: bool,
                       edit_distance: int) -> Set[str]:
        """Return the candidates within edit_distance of barcode. candidates is not modified."""
        candidates = list(candidates)
        distances = self.compute_distances(barcode, candidates, find_indels)
        return {candidates[i] for i in np.flatnonzero(distances <= edit_distance)}
