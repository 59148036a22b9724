"""Core backend infrastructure for the timing replay service.

Configuration, logging, database, and dependency helpers used by the FastAPI
application entrypoint.
"""
