"""Livvitt custom print order intake: pricing engine + order API."""

__version__ = "1.0.0"
