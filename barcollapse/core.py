import logging
import time
from concurrent.futures import Executor
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from tqdm import tqdm

from barcollapse.config import CollapseConfig
from barcollapse.errors import InvariantViolation
from barcollapse.neighbors import NeighborFinder
from barcollapse.threshold import NO_THRESHOLD, ThresholdDetector
from barcollapse.types import (
    AdaptiveMappingResult,
    BottomUpCollapseResult,
    EditDistanceMappingMetric,
    FrequencyTable,
)


# Progress lines are only worth logging for tables larger than this
PROGRESS_LOG_MIN_BARCODES = 10000


class BarcodeCollapser:
    """Collapses barcodes into the core barcodes they are most likely error variants of.

    Core barcodes are processed one at a time from the front of a queue; each absorbs
    every remaining barcode within the edit distance, and absorbed barcodes are removed
    from both the comparison pool and the queue. Earlier core barcodes therefore win
    contested neighbors, and no barcode is ever assigned twice.

    Non-core barcodes may be absorbed but never absorb others. Restricting the core to a
    small set (e.g. the cell barcodes) limits the work to len(core) * len(table)
    comparisons.
    """

    def __init__(self, num_threads: int = 1,
                 report_progress_interval: int = 100000,
                 verbose: bool = False,
                 show_progress: bool = False,
                 executor: Optional[Executor] = None):
        if report_progress_interval < 0:
            raise ValueError(f"report_progress_interval must be >= 0, got {report_progress_interval}")
        self.num_threads = num_threads
        self.report_progress_interval = report_progress_interval
        self.verbose = verbose
        self.show_progress = show_progress
        self.neighbor_finder = NeighborFinder(num_threads=num_threads, executor=executor)
        self.threshold_detector = ThresholdDetector(self.neighbor_finder)

    @classmethod
    def from_config(cls, config: CollapseConfig, executor: Optional[Executor] = None) -> 'BarcodeCollapser':
        return cls(num_threads=config.num_threads,
                   report_progress_interval=config.report_progress_interval,
                   verbose=config.verbose,
                   show_progress=config.show_progress,
                   executor=executor)

    def close(self) -> None:
        """Release the worker pool if this collapser created it."""
        self.neighbor_finder.close()

    def __enter__(self) -> 'BarcodeCollapser':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def find_neighbors(self, barcode: str, candidates: Sequence[str], find_indels: bool,
                       edit_distance: int) -> Set[str]:
        return self.neighbor_finder.find_neighbors(barcode, candidates, find_indels, edit_distance)

    def find_edit_distance_threshold(self, barcode: str, all_barcodes: Sequence[str], find_indels: bool,
                                     min_edit_distance: int, max_edit_distance: int) -> int:
        return self.threshold_detector.discover_threshold(
            barcode, all_barcodes, find_indels, min_edit_distance, max_edit_distance)

    def bottom_up_collapse(self, barcodes: FrequencyTable, edit_distance: int) -> BottomUpCollapseResult:
        """Pair each barcode with the single larger barcode within edit_distance.

        Barcodes are visited smallest first and compared (Hamming only) against every
        barcode after them in ascending count order. A barcode with exactly one such
        neighbor is paired with it, but only when that neighbor has a strictly larger
        count; equal counts are adjacent in the ordering without one being "larger".
        A barcode with several neighbors is ambiguous and left unpaired.
        """
        result = BottomUpCollapseResult()
        barcode_list = barcodes.keys_ordered_by_count(descending=False)

        # The largest barcode has nothing to collapse into
        for i in tqdm(range(len(barcode_list) - 1), desc="Bottom-up collapse", disable=not self.show_progress):
            small_barcode = barcode_list[i]
            related = self.neighbor_finder.find_neighbors(small_barcode, barcode_list[i + 1:], False, edit_distance)
            if len(related) == 1:
                large_barcode = next(iter(related))
                if barcodes.count_of(small_barcode) < barcodes.count_of(large_barcode):
                    result.add_pair(small_barcode, large_barcode)
            elif len(related) > 1:
                result.add_ambiguous_barcode(small_barcode)

        logging.debug(f"Bottom-up collapse paired {len(result.pairs)} barcodes, "
                      f"{len(result.ambiguous)} ambiguous")
        return result

    def collapse_barcodes(self, barcodes: FrequencyTable, find_indels: bool, edit_distance: int,
                          core_barcodes: Optional[Sequence[str]] = None) -> Dict[str, List[str]]:
        """Collapse barcodes into core barcodes using a fixed edit distance.

        Args:
            barcodes: Counts for every barcode, core and non-core
            find_indels: Use the indel sliding window distance instead of Hamming
            edit_distance: Maximum distance at which a barcode is absorbed
            core_barcodes: Barcodes eligible to absorb others, processed in the order
                given. Defaults to every barcode, largest count first.

        Returns:
            Dict mapping each surviving core barcode to the sorted list of barcodes
            absorbed into it.

        Raises:
            InvariantViolation: if a barcode is assigned twice.
            WorkerFailure: if a distance computation fails.
        """
        if core_barcodes is None:
            core_barcodes = barcodes.keys_ordered_by_count(descending=True)
        result, _ = self._collapse(core_barcodes, barcodes, find_indels,
                                   lambda barcode: (edit_distance, edit_distance))
        return result

    def collapse_barcodes_adaptive(self, barcodes: FrequencyTable, find_indels: bool,
                                   default_edit_distance: int, min_edit_distance: int, max_edit_distance: int,
                                   core_barcodes: Optional[Sequence[str]] = None) -> AdaptiveMappingResult:
        """Collapse barcodes using an edit distance discovered separately for each core barcode.

        For every core barcode the distance distribution against all barcodes is
        expected to be bimodal: a few error variants close by, many unrelated barcodes
        far away. The last filled distance before the first empty histogram bin in
        [min_edit_distance, max_edit_distance] is used as that barcode's threshold,
        falling back to default_edit_distance when no gap is found.

        Thresholds are discovered against the full, fixed barcode set, while absorption
        uses the same shrinking pool as collapse_barcodes().

        Returns:
            AdaptiveMappingResult with the collapse mapping and one metric per
            processed core barcode, including those that absorbed nothing.

        Raises:
            ValueError: if any of the edit distance arguments is negative.
        """
        for name, value in (('default_edit_distance', default_edit_distance),
                            ('min_edit_distance', min_edit_distance),
                            ('max_edit_distance', max_edit_distance)):
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if core_barcodes is None:
            core_barcodes = barcodes.keys_ordered_by_count(descending=True)
        all_barcodes = sorted(set(core_barcodes) | set(barcodes.keys()))

        def select_edit_distance(barcode: str) -> Tuple[int, int]:
            discovered = self.threshold_detector.discover_threshold(
                barcode, all_barcodes, find_indels, min_edit_distance, max_edit_distance)
            # Keep the discovered value for reporting even when it is replaced
            used = discovered
            if discovered > max_edit_distance or discovered == NO_THRESHOLD:
                used = default_edit_distance
            logging.debug(f"Barcode {barcode}: discovered edit distance {discovered}, using {used}")
            return used, discovered

        result, records = self._collapse(core_barcodes, barcodes, find_indels, select_edit_distance)

        metrics = []
        for barcode, close_barcodes, used, discovered in records:
            num_observations = barcodes.count_of(barcode)
            merged = num_observations + sum(barcodes.count_of(b) for b in close_barcodes)
            metrics.append(EditDistanceMappingMetric(
                barcode=barcode,
                num_merged=len(close_barcodes),
                edit_distance_used=used,
                edit_distance_discovered=discovered,
                num_observations=num_observations,
                num_observations_merged=merged,
            ))
        return AdaptiveMappingResult(result, metrics)

    def _collapse(self, core_barcodes: Sequence[str], barcodes: FrequencyTable, find_indels: bool,
                  select_edit_distance: Callable[[str], Tuple[int, int]]
                  ) -> Tuple[Dict[str, List[str]], List[Tuple[str, Set[str], int, int]]]:
        """Drain the core queue, absorbing neighbors of each core barcode in turn.

        Returns the collapse mapping and, per processed core barcode, a record of
        (barcode, absorbed set, edit distance used, edit distance discovered).
        """
        # Work on copies; the caller's list and table are never modified
        core_queue = list(core_barcodes)
        barcodes = barcodes.copy()
        barcode_list = barcodes.keys_ordered_by_count(descending=True)

        result: Dict[str, List[str]] = {}
        records = []
        count = 0
        num_collapsed = 0
        core_barcode_count = len(core_queue)
        start_time = time.time()

        with tqdm(total=core_barcode_count, desc="Collapsing barcodes", disable=not self.show_progress) as pbar:
            while core_queue:
                barcode = core_queue[0]
                count += 1
                queue_size = len(core_queue)
                core_queue = [b for b in core_queue if b != barcode]
                barcode_list = [b for b in barcode_list if b != barcode]

                used, discovered = select_edit_distance(barcode)
                close_barcodes = self.neighbor_finder.find_neighbors(barcode, barcode_list, find_indels, used)
                num_collapsed += len(close_barcodes)

                if barcode in result:
                    raise InvariantViolation(f"Core barcode {barcode} was already collapsed")
                already_assigned = {b for b in close_barcodes if b in result or b == barcode}
                if already_assigned:
                    raise InvariantViolation(
                        f"Barcodes {sorted(already_assigned)} absorbed by {barcode} are already core barcodes")

                result[barcode] = sorted(close_barcodes)
                records.append((barcode, close_barcodes, used, discovered))

                if close_barcodes:
                    barcode_list = [b for b in barcode_list if b not in close_barcodes]
                    core_queue = [b for b in core_queue if b not in close_barcodes]
                pbar.update(queue_size - len(core_queue))

                if self.report_progress_interval and count % self.report_progress_interval == 0:
                    if len(barcodes) > PROGRESS_LOG_MIN_BARCODES:
                        logging.info(f"Processed [{count}] records, total barcode space left "
                                     f"[{len(barcode_list)}], # collapsed this set [{num_collapsed}]")
                    num_collapsed = 0

        if self.verbose:
            duration = time.time() - start_time
            logging.info(f"Collapse with [{self.num_threads}] threads took [{duration:.1f}] seconds to process")
            logging.info(f"Started with core barcodes [{core_barcode_count}] ended with [{count}] "
                         f"num collapsed [{core_barcode_count - count}]")
        return result, records
