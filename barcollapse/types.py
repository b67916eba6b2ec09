"""Shared data structures for barcode collapsing."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Set, Union


class FrequencyTable:
    """Observation counts per barcode.

    Keys are ordered by count; ties are broken by lexicographic barcode order
    (ascending) regardless of the count direction, so every ordering is total
    and stable across runs.
    """

    def __init__(self, counts: Optional[Union[Mapping[str, int], Iterable[str]]] = None):
        self._counts: Counter = Counter()
        if counts is None:
            return
        if isinstance(counts, FrequencyTable):
            counts = dict(counts._counts)
        if isinstance(counts, Mapping):
            for barcode, count in counts.items():
                self.set_count(barcode, count)
        else:
            for barcode in counts:
                self.increment(barcode)

    def increment(self, barcode: str, count: int = 1) -> None:
        if count < 0:
            raise ValueError(f"Cannot decrement barcode {barcode} by {count}")
        self._counts[barcode] += count

    def set_count(self, barcode: str, count: int) -> None:
        if count < 0:
            raise ValueError(f"Negative count {count} for barcode {barcode}")
        self._counts[barcode] = count

    def count_of(self, barcode: str) -> int:
        """Return the count for barcode, 0 if it was never observed."""
        return self._counts.get(barcode, 0)

    def keys(self) -> List[str]:
        return list(self._counts)

    def keys_ordered_by_count(self, descending: bool = True) -> List[str]:
        if descending:
            return sorted(self._counts, key=lambda b: (-self._counts[b], b))
        return sorted(self._counts, key=lambda b: (self._counts[b], b))

    def total_count(self) -> int:
        return sum(self._counts.values())

    def copy(self) -> 'FrequencyTable':
        return FrequencyTable(dict(self._counts))

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, barcode) -> bool:
        return barcode in self._counts

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __repr__(self) -> str:
        return f"FrequencyTable({dict(self._counts)!r})"


@dataclass
class BottomUpCollapseResult:
    """Unambiguous small -> large pairings plus barcodes left unresolved."""
    pairs: Dict[str, str] = field(default_factory=dict)
    ambiguous: Set[str] = field(default_factory=set)

    def add_pair(self, small_barcode: str, large_barcode: str) -> None:
        self.pairs[small_barcode] = large_barcode

    def add_ambiguous_barcode(self, barcode: str) -> None:
        self.ambiguous.add(barcode)

    def get_larger_barcode(self, small_barcode: str) -> Optional[str]:
        return self.pairs.get(small_barcode)

    def unambiguous_small_barcodes(self) -> List[str]:
        return sorted(self.pairs)


class EditDistanceMappingMetric(NamedTuple):
    """Outcome of adaptively collapsing one core barcode."""
    barcode: str
    num_merged: int  # Barcodes absorbed into this one
    edit_distance_used: int
    edit_distance_discovered: int  # -1 when no histogram gap was found
    num_observations: int  # Count of the core barcode alone
    num_observations_merged: int  # Core count plus all absorbed counts


class AdaptiveMappingResult(NamedTuple):
    barcode_collapse_result: Dict[str, List[str]]
    metrics: List[EditDistanceMappingMetric]
