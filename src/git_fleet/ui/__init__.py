"""Command line grammar."""

from .args import build_parser, interpret, parse_args

__all__ = ["build_parser", "interpret", "parse_args"]
