"""Ingestion helpers.

Everything read from the store passes through this package before it
reaches the state layer: stored documents are decoded and validated into
models here, and nowhere else.
"""
