from ragseek.utils.concurrency import ReadWriteLock, raise_if_cancelled
from ragseek.utils.env import resolve_env_reference, resolve_env_vars

__all__ = [
    "ReadWriteLock",
    "raise_if_cancelled",
    "resolve_env_reference",
    "resolve_env_vars",
]
