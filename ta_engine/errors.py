"""Engine exceptions.

Thin or degenerate data never raises; it yields empty results. These
exceptions are reserved for caller bugs.
"""


class SeriesAlignmentError(ValueError):
    """A derived series or pivot list does not fit the candle array it claims to index."""
