"""Test helpers."""

from logbook.tracking.samples import TelemetrySample


def make_sample(timestamp, **fields) -> TelemetrySample:
    """TelemetrySample with only the given fields set."""
    return TelemetrySample(timestamp=float(timestamp), **fields)
