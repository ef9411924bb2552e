"""
Git-backed content pipeline integration tests.

Every test runs against a REAL git repository created in a temporary
directory: no mocks for git commands.
"""
