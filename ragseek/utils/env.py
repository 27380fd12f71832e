from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "os.environ/"


def resolve_env_reference(value: Any, *, label: Optional[str] = None) -> Any:
    """
    Resolve a configuration value that points at an environment variable.

    ``os.environ/VAR`` and ``#VAR`` are both understood. Anything else is
    returned untouched. A reference to an unset variable resolves to ``None``
    and is logged.
    """
    if not isinstance(value, str):
        return value

    if value.startswith(ENV_PREFIX):
        env_var = value[len(ENV_PREFIX):]
    elif value.startswith("#") and len(value) > 1:
        env_var = value[1:]
    else:
        return value

    resolved = os.environ.get(env_var)
    if resolved is None:
        context = f" for {label}" if label else ""
        logger.warning(f"Environment variable '{env_var}' not found{context}")
    return resolved


def resolve_env_vars(config: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve every top-level string value of ``config`` (nested dicts included)."""
    resolved: Dict[str, Any] = {}
    for key, value in config.items():
        if isinstance(value, dict):
            resolved[key] = resolve_env_vars(value)
        else:
            resolved[key] = resolve_env_reference(value, label=key)
    return resolved
