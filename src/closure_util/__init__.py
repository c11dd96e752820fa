"""Dependency-aware development server and build helper for Closure Library projects."""

__version__ = "0.1.0"
