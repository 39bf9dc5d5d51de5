"""Extraction sub-package: Kindle clippings HTML → BookRecord."""

from .clippings import ExtractionReport, TierResult, extract, extract_with_details
from .text import normalize_fragment, strip_markup

__all__ = [
    "ExtractionReport",
    "TierResult",
    "extract",
    "extract_with_details",
    "normalize_fragment",
    "strip_markup",
]
