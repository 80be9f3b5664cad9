"""Utility modules for the health store."""

from healthstore.utils.timeout import OperationTimeoutError, run_with_timeout

__all__ = ["OperationTimeoutError", "run_with_timeout"]
