"""SchoolChat: natural-language analytics over school and catchment data."""

__version__ = "0.1.0"
