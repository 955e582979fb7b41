"""Lambda handlers exposed through the HTTP API router."""
