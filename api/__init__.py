"""
FastAPI application for the hierarchy import system.

This package contains the REST API for importing objectives, initiatives
and activities from spreadsheet files and browsing import history.
"""

__version__ = "1.0.0"
