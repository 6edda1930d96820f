"""Operation correlation ids."""

import time
import uuid


def new_operation_id() -> str:
    """Opaque id joining every attempt and telemetry record of one operation."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
