"""ID generation utilities."""

import uuid


def generate_id(prefix: str = "") -> str:
    """Generate a unique ID with optional prefix.

    Format: {prefix}_{uuid4 hex[:12]}
    Example: thread_3f9a0c12be47
    """
    suffix = uuid.uuid4().hex[:12]
    if prefix:
        return f"{prefix}_{suffix}"
    return suffix
