"""
Hierarchy import pipeline: parse, normalize, validate, resolve, execute, log.

Nothing here depends on FastAPI, so the API router and the CLI share it.
"""

__version__ = "1.0.0"
