"""DocGen - LLM-driven project documentation pipeline.

This package drives a fixed eight-stage sequence of text-generation calls
against two LLM backends, turns the resulting communication schema into
per-directory README/AGENT documents, and commits them into a freshly
created hosted repository.
"""

__version__ = "0.1.0"
