# utils/reporting.py
from __future__ import annotations

import logging
import uuid
from typing import Any

log = logging.getLogger("reporting")


def capture_exception(err: BaseException, **context: Any) -> str:
    """Log an unexpected failure with a short reference id users can quote to support."""
    ref = uuid.uuid4().hex[:12]
    log.error(
        "Unexpected error ref=%s: %s: %s",
        ref,
        type(err).__name__,
        err,
        exc_info=(type(err), err, err.__traceback__),
        extra={"ref": ref, **{f"ctx_{k}": v for k, v in context.items()}},
    )
    return ref
