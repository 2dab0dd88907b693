from dataclasses import dataclass

REQUEST_FAILED = "request failed"


@dataclass(frozen=True)
class Ok:
    """Successful gateway reply. ``value`` is the raw ``msg`` string."""
    value: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed gateway reply: a business failure or a transport/parse error."""
    reason: str

    @property
    def ok(self) -> bool:
        return False


Result = Ok | Err


def from_envelope(payload) -> Result:
    """Convert a ``{"success": bool, "msg": ...}`` envelope into a Result.

    Anything that is not a JSON object counts as a failed request.
    """
    if not isinstance(payload, dict):
        return Err(REQUEST_FAILED)

    success = payload.get("success")
    msg = payload.get("msg")
    # Only JSON true or 1 count; a string such as "false" must not pass.
    if isinstance(success, (bool, int)) and success == 1:
        return Ok("" if msg is None else str(msg))
    return Err(str(msg) if msg else "unknown error")
