"""Barcode distance metrics.

Two metrics are supported:
- Hamming distance, for substitution-only errors between equal-length barcodes.
- Indel sliding window distance, which also tolerates a single-base shift caused by
  an insertion or deletion inside a fixed-length barcode.
"""

from typing import Callable

import edlib


DistanceFunction = Callable[[str, str], int]


def hamming_distance(seq1: str, seq2: str) -> int:
    """Count mismatching positions between two barcodes.

    Barcodes of unequal length are compared over their shared prefix and the
    length difference is added, so they are never closer than their length gap.
    """
    mismatches = sum(1 for a, b in zip(seq1, seq2) if a != b)
    return mismatches + abs(len(seq1) - len(seq2))


def indel_sliding_window_distance(seq1: str, seq2: str) -> int:
    """Edit distance that does not penalize the base shifted into a barcode by an indel.

    A deletion inside a fixed-length barcode pulls the next base of the read into
    the final position (and an insertion pushes the last base out), so a global
    alignment scores one indel as two edits. Aligning each barcode against a
    prefix of the other leaves that trailing base free, scoring the indel as one.

    Returns:
        The minimum of the global edit distance and both prefix-mode edit
        distances, but never less than the difference in length.
    """
    if seq1 == seq2:
        return 0
    if not seq1 or not seq2:
        return max(len(seq1), len(seq2))

    distance = edlib.align(seq1, seq2, mode="NW", task="distance")["editDistance"]
    # SHW: query aligned end to end, trailing bases of the target are free
    distance = min(distance,
                   edlib.align(seq1, seq2, mode="SHW", task="distance")["editDistance"],
                   edlib.align(seq2, seq1, mode="SHW", task="distance")["editDistance"])
    return max(distance, abs(len(seq1) - len(seq2)))


def get_distance_function(find_indels: bool) -> DistanceFunction:
    """Select the metric used for collapsing."""
    return indel_sliding_window_distance if find_indels else hamming_distance
