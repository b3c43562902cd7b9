"""Image post-processing: URL extraction, bounded fetch, upload and attach."""

from __future__ import annotations

from .extract import extract_image_urls, file_name_for
from .fetch import HttpMediaFetcher, MediaFetcher
from .process import ImageProcessor

__all__ = [
    "HttpMediaFetcher",
    "ImageProcessor",
    "MediaFetcher",
    "extract_image_urls",
    "file_name_for",
]
