"""Service modules for the code intelligence prompt core."""

__all__ = ["preferences"]
