import uuid

def new_id(prefix: str) -> str:
    """Prefixed random identifier, e.g. ``dh_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex}"
