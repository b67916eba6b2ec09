"""Configuration for barcode collapsing."""

from dataclasses import dataclass


@dataclass
class CollapseConfig:
    """Configuration for a BarcodeCollapser.

    num_threads, report_progress_interval, verbose and show_progress are consumed
    by BarcodeCollapser.from_config(). The remaining fields are per-call collapse
    parameters that the library never reads on its own: callers pass them to
    collapse_barcodes(), bottom_up_collapse() or collapse_barcodes_adaptive().

    Attributes:
        num_threads: Worker pool size for per-barcode distance fan-out (1 = no pool)
        report_progress_interval: Log progress every N core barcodes (0 = never)
        verbose: Log timing and summary after each collapse
        show_progress: Display a tqdm progress bar over core barcodes
        find_indels: Use the indel sliding window distance instead of Hamming
        edit_distance: Fixed edit distance for greedy and bottom-up collapse
        default_edit_distance: Adaptive fallback when no threshold is discovered
        min_edit_distance: Smallest edit distance scanned for a histogram gap
        max_edit_distance: Largest edit distance scanned for a histogram gap
    """
    num_threads: int = 1
    report_progress_interval: int = 100000
    verbose: bool = False
    show_progress: bool = False
    find_indels: bool = False
    edit_distance: int = 1
    default_edit_distance: int = 1
    min_edit_distance: int = 1
    max_edit_distance: int = 3

    def __post_init__(self):
        if self.num_threads < 1:
            raise ValueError(f"num_threads must be at least 1, got {self.num_threads}")
        if self.report_progress_interval < 0:
            raise ValueError(f"report_progress_interval must be >= 0, got {self.report_progress_interval}")
        for name in ('edit_distance', 'default_edit_distance', 'min_edit_distance', 'max_edit_distance'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.min_edit_distance > self.max_edit_distance:
            raise ValueError(f"min_edit_distance ({self.min_edit_distance}) exceeds "
                             f"max_edit_distance ({self.max_edit_distance})")

    @classmethod
    def from_args(cls, args) -> 'CollapseConfig':
        """Create config from command-line arguments.

        Any object with matching attribute names works (argparse.Namespace,
        SimpleNamespace). Missing attributes keep their defaults.
        """
        defaults = cls()
        return cls(**{
            name: getattr(args, name, getattr(defaults, name))
            for name in cls.__dataclass_fields__
        })
