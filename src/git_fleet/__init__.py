"""Run one git or shell command across groups of local repositories."""

__version__ = "1.0.0"
