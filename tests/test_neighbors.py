#!/usr/bin/env python3
"""
Tests for NeighborFinder, sequential and parallel.
"""

import random
from concurrent.futures import ThreadPoolExecutor
from unittest import mock

import pytest

from barcollapse.errors import WorkerFailure
from barcollapse.neighbors import NeighborFinder


def random_barcodes(seed: str, n: int, length: int = 8):
    rng = random.Random(seed)
    return sorted({''.join(rng.choice('ACGT') for _ in range(length)) for _ in range(n)})


def failing_distance(seq1, seq2):
    if seq2 == "TTTTTTTT":
        raise RuntimeError("metric exploded")
    return 0


class TestFindNeighbors:

    @pytest.fixture
    def finder(self):
        finder = NeighborFinder()
        yield finder
        finder.close()

    def test_hamming_neighbors(self, finder):
        pool = ["AAAT", "AATT", "TTTT", "AAAC"]
        assert finder.find_neighbors("AAAA", pool, False, 1) == {"AAAT", "AAAC"}
        assert finder.find_neighbors("AAAA", pool, False, 2) == {"AAAT", "AATT", "AAAC"}

    def test_indel_neighbors(self, finder):
        pool = ["ACTACT", "TTTTTT"]
        assert finder.find_neighbors("ACGTAC", pool, False, 1) == set()
        assert finder.find_neighbors("ACGTAC", pool, True, 1) == {"ACTACT"}

    def test_pool_not_modified(self, finder):
        pool = ["AAAT", "TTTT"]
        finder.find_neighbors("AAAA", pool, False, 1)
        assert pool == ["AAAT", "TTTT"]

    def test_empty_pool(self, finder):
        assert finder.find_neighbors("AAAA", [], False, 3) == set()
        assert finder.compute_distances("AAAA", [], False).size == 0

    def test_compute_distances_keeps_candidate_order(self, finder):
        distances = finder.compute_distances("AAAA", ["TTTT", "AAAA", "AAAT"], False)
        assert distances.tolist() == [4, 0, 1]

    def test_invalid_thread_count(self):
        with pytest.raises(ValueError):
            NeighborFinder(num_threads=0)


class TestParallelNeighbors:

    @pytest.mark.parametrize("find_indels", [False, True])
    def test_parallel_matches_sequential(self, find_indels):
        pool = random_barcodes("parallel", 300)
        sequential = NeighborFinder(num_threads=1)
        parallel = NeighborFinder(num_threads=4)
        try:
            for target in pool[:20]:
                expected = sequential.find_neighbors(target, pool, find_indels, 4)
                assert parallel.find_neighbors(target, pool, find_indels, 4) == expected
                assert (parallel.compute_distances(target, pool, find_indels).tolist() ==
                        sequential.compute_distances(target, pool, find_indels).tolist())
        finally:
            parallel.close()

    def test_fewer_candidates_than_threads(self):
        finder = NeighborFinder(num_threads=8)
        try:
            assert finder.find_neighbors("AAAA", ["AAAT", "TTTT"], False, 1) == {"AAAT"}
        finally:
            finder.close()

    def test_injected_executor_left_running(self):
        executor = ThreadPoolExecutor(max_workers=2)
        try:
            finder = NeighborFinder(num_threads=2, executor=executor)
            assert finder.find_neighbors("AAAA", ["AAAT", "TTTT"], False, 1) == {"AAAT"}
            finder.close()
            # Still usable after the finder is closed
            assert executor.submit(lambda: 42).result() == 42
        finally:
            executor.shutdown()

    def test_owned_executor_created_at_construction(self):
        finder = NeighborFinder(num_threads=2)
        try:
            assert finder._executor is not None
        finally:
            finder.close()
        assert finder._executor is None

    def test_single_thread_has_no_executor(self):
        finder = NeighborFinder(num_threads=1)
        assert finder._executor is None
        finder.close()

    @pytest.mark.parametrize("num_threads", [1, 2])
    def test_closed_finder_rejects_work(self, num_threads):
        finder = NeighborFinder(num_threads=num_threads)
        finder.close()
        assert finder.closed
        with pytest.raises(RuntimeError):
            finder.find_neighbors("AAAA", ["AAAT"], False, 1)

    def test_close_is_idempotent(self):
        finder = NeighborFinder(num_threads=2)
        finder.close()
        finder.close()
        assert finder.closed


class TestWorkerFailure:

    @pytest.mark.parametrize("num_threads", [1, 3])
    def test_metric_failure_propagates(self, num_threads):
        finder = NeighborFinder(num_threads=num_threads)
        pool = random_barcodes("failure", 50) + ["TTTTTTTT"]
        try:
            with mock.patch("barcollapse.neighbors.get_distance_function", return_value=failing_distance):
                with pytest.raises(WorkerFailure) as excinfo:
                    finder.find_neighbors("AAAAAAAA", pool, False, 1)
        finally:
            finder.close()

        assert excinfo.value.barcode == "AAAAAAAA"
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert "metric exploded" in str(excinfo.value)

    def test_submit_failure_wrapped(self):
        executor = ThreadPoolExecutor(max_workers=2)
        executor.shutdown()
        finder = NeighborFinder(num_threads=2, executor=executor)
        with pytest.raises(WorkerFailure) as excinfo:
            finder.find_neighbors("AAAA", ["AAAT", "TTTT"], False, 1)

        assert excinfo.value.barcode == "AAAA"
        assert isinstance(excinfo.value.__cause__, RuntimeError)
