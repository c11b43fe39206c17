"""Lightweight result type for operation outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of an operation that reports failure as a value.

    Truthy on success and unpacks to ``(success, message)``. On success
    *value* holds the payload (the rendered text for a render call); on
    failure *message* is the diagnostic reason and *value* may carry a
    machine-readable marker such as the state the operation stopped in.

    Examples::

        r = await renderer.render(request)
        if r:
            await reply(r.value)

        ok, reason = Result.fail("renderer timed out", value=RenderState.TIMED_OUT)
    """

    success: bool
    message: str = ""
    value: Any = field(default=None, repr=False)

    # -- constructors ------------------------------------------------------

    @classmethod
    def ok(cls, message: str = "", *, value: Any = None) -> Result:
        return cls(success=True, message=message, value=value)

    @classmethod
    def fail(cls, message: str = "", *, value: Any = None) -> Result:
        return cls(success=False, message=message, value=value)

    # -- accessors ---------------------------------------------------------

    def value_or(self, default: Any) -> Any:
        """Return *value* on success, *default* otherwise."""
        return self.value if self.success else default

    # -- protocols ---------------------------------------------------------

    def __bool__(self) -> bool:
        return self.success

    def __iter__(self):
        yield self.success
        yield self.message
