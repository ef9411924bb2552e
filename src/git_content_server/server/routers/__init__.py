"""REST routers for the content server."""
