"""HTTP server for git-backed content editing."""
