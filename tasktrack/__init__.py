"""Personal task tracker: FastAPI over a single SQLite file."""

__version__ = "1.0.0"
