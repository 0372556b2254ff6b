"""
chkjam: Crash-safe dual-buffer checkpoints for interpreter state.

A checkpoint is written alternately to one of two buffer slots so that a
crash mid-write always leaves the previous snapshot recoverable.
"""

__version__ = "0.1.0"
