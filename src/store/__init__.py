"""Storage layer.

This module persists namespaces, element types, and elements as
documents in a directory tree on a pluggable filesystem backend.
"""
