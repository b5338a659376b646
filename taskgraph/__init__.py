"""taskgraph — task dependency graphs, cycle detection and critical paths."""

__version__ = "0.1.0"
