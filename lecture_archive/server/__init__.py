"""HTTP API (FastAPI) for browsing and searching the lecture archive."""
