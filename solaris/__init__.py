"""Solaris Forensic: evidence-to-knowledge-graph case workspace."""

__version__ = "0.1.0"
