"""Diff Digest — streaming release notes from merged pull-request diffs."""

__version__ = "0.1.0"
