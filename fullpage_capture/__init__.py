"""Deterministic desktop and mobile full-document screenshots with optional link crawling."""

__all__ = ["__version__"]

__version__ = "0.1.0"
