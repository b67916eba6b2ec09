"""Exceptions raised by the barcode collapsing engine."""


class CollapseError(Exception):
    """Base class for failures of a collapse operation."""
    pass


class InvariantViolation(CollapseError):
    """A core barcode was assigned twice during a collapse."""
    pass


class WorkerFailure(CollapseError):
    """A distance computation failed while searching one target barcode.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, barcode: str, message: str):
        self.barcode = barcode
        super().__init__(f"Distance computation failed for barcode {barcode}: {message}")
