"""Adaptive edit distance threshold discovery.

Error variants of a barcode sit at small edit distances from it, while unrelated
barcodes pile up at large distances. The first empty bin of the distance histogram,
scanned upward from the smallest distance, is taken as the boundary between the two.
"""

from typing import Dict, Iterable

import numpy as np

from barcollapse.neighbors import NeighborFinder


# Returned by discover_threshold when the scanned range has no empty bin
NO_THRESHOLD = -1


class ThresholdDetector:
    def __init__(self, neighbor_finder: NeighborFinder):
        self.neighbor_finder = neighbor_finder

    def distance_histogram(self, barcode: str, universe: Iterable[str], find_indels: bool) -> Dict[int, int]:
        """Count universe members at each edit distance from barcode.

        Only non-empty bins are returned. If the universe contains barcode itself
        it is counted at distance 0.
        """
        distances = self.neighbor_finder.compute_distances(barcode, list(universe), find_indels)
        if distances.size == 0:
            return {}
        counts = np.bincount(distances)
        return {int(d): int(c) for d, c in enumerate(counts) if c > 0}

    def discover_threshold(self, barcode: str, universe: Iterable[str], find_indels: bool,
                           min_edit_distance: int, max_edit_distance: int) -> int:
        """Find the last filled edit distance before the first gap in the histogram.

        Args:
            barcode: Target barcode
            universe: Barcodes to measure against
            find_indels: Use the indel sliding window metric instead of Hamming
            min_edit_distance: First edit distance scanned for an empty bin
            max_edit_distance: Last edit distance scanned (inclusive)

        Returns:
            (first empty bin) - 1; 0 if every scanned bin is empty;
            NO_THRESHOLD if no scanned bin is empty.

            An empty scan range (min_edit_distance > max_edit_distance) has no
            empty bin and also yields NO_THRESHOLD.

        Raises:
            ValueError: if either bound is negative.
        """
        if min_edit_distance < 0 or max_edit_distance < 0:
            raise ValueError(f"Edit distance bounds must be non-negative, got "
                             f"{min_edit_distance}..{max_edit_distance}")
        histogram = self.distance_histogram(barcode, universe, find_indels)
        scanned = range(min_edit_distance, max_edit_distance + 1)
        empty_bins = [d for d in scanned if histogram.get(d, 0) == 0]

        if not empty_bins:
            return NO_THRESHOLD
        if len(empty_bins) == len(scanned):
            return 0
        return empty_bins[0] - 1
