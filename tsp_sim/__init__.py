"""
Interactive genetic-algorithm search for short closed tours over a fixed city set.
"""

__all__ = [
    "cli",
    "errors",
    "evaluation",
    "evolutionary",
    "genetics",
    "geometry",
    "runner",
]
