"""Evaluator helper modules for the Aquila interpreter."""

__all__ = [
    "bind",
    "common",
    "fn",
    "literals",
    "loops",
    "operators",
]
