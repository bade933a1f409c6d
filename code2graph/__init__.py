"""
code2graph - dependency graphs and dead-code reports for component-based UI codebases.
"""

__version__ = "1.0.0"
