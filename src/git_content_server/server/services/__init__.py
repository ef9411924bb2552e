"""Content mutation pipeline services."""
