"""Headless scheduler-trace analysis core.

Reconstructs per-task running/runnable/blocked timelines from state-transition
events and flags bottleneck patterns. No Qt imports here; the desktop explorer
is a separate package built on top of this one.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
