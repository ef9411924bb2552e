"""Git Content Server - HTTP editing of files tracked in a git working tree."""

__version__ = "0.1.0"
