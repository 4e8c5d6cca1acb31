"""Probe, thumbnail and content-identity helpers for the ingestion pipeline."""

# Bumped whenever the metadata record gains fields; older records are re-ingested.
PARSER_VERSION = "mediapeek.ingest/0.2.0"

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "tiff", "tif", "bmp"})

__all__ = ["PARSER_VERSION", "IMAGE_EXTENSIONS"]
