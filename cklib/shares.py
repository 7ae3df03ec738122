"""Share submission result codes."""

from __future__ import annotations

from enum import IntEnum


class ShareError(IntEnum):
    """Outcome of a share submission; NONE means the share is valid."""

    INVALID_NONCE2 = -9
    WORKER_MISMATCH = -8
    NO_NONCE = -7
    NO_NTIME = -6
    NO_NONCE2 = -5
    NO_JOBID = -4
    NO_USERNAME = -3
    INVALID_SIZE = -2
    NOT_ARRAY = -1
    NONE = 0
    INVALID_JOBID = 1
    STALE = 2
    NTIME_INVALID = 3
    DUPE = 4
    HIGH_DIFF = 5
    INVALID_VERSION_MASK = 6

    def description(self) -> str:
        """Return the human readable text for this result."""
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ShareError.INVALID_NONCE2: "Invalid nonce2 length",
    ShareError.WORKER_MISMATCH: "Worker mismatch",
    ShareError.NO_NONCE: "No nonce",
    ShareError.NO_NTIME: "No ntime",
    ShareError.NO_NONCE2: "No nonce2",
    ShareError.NO_JOBID: "No job_id",
    ShareError.NO_USERNAME: "No username",
    ShareError.INVALID_SIZE: "Invalid array size",
    ShareError.NOT_ARRAY: "Params not array",
    ShareError.NONE: "Valid",
    ShareError.INVALID_JOBID: "Invalid JobID",
    ShareError.STALE: "Stale",
    ShareError.NTIME_INVALID: "Ntime out of range",
    ShareError.DUPE: "Duplicate",
    ShareError.HIGH_DIFF: "Above target",
    ShareError.INVALID_VERSION_MASK: "Invalid version mask",
}