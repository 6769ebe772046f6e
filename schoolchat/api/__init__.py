"""HTTP API for SchoolChat."""
