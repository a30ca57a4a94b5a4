"""Listeners that limit and isolate an untrusted program, and builders that report its outcome."""

__version__ = "0.1.0"