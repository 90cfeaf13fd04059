"""Preview sessions and sandboxed code intelligence for generated projects."""

__version__ = "0.1.0"
