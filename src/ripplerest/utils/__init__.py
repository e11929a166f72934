"""Utility modules for ripplerest."""

from ripplerest.utils.latch import CompletionLatch, LatchTimeoutError

__all__ = ["CompletionLatch", "LatchTimeoutError"]
