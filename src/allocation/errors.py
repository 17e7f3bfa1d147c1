"""Failures raised by adapters for the external collaborators.

Domain rule violations use ``protean.exceptions.ValidationError`` and missing
records use ``ObjectNotFoundError``; the classes here only describe calls to
systems this context does not own.
"""


class UpstreamUnavailable(Exception):
    """An external collaborator failed or could not be reached."""

    def __init__(self, service: str, detail: str = "") -> None:
        self.service = service
        self.detail = detail
        super().__init__(f"{service} unavailable: {detail}" if detail else f"{service} unavailable")


class TransientUpstreamError(UpstreamUnavailable):
    """A retry-eligible failure, such as a timeout or a 5xx response."""
