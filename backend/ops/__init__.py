# ops/__init__.py
"""Operational plumbing: structured logging and health probes."""
