"""Ingestion layer.

This package reads the raw source collections from the document store and
normalizes each record type into the shared canonical shape.
"""

__all__: list[str] = []
