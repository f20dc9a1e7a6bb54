"""Exceptions raised by the Yinyang core."""


class YinyangError(Exception):
    """Base class for all Yinyang errors."""

    pass


class RecordStoreUnavailable(YinyangError):
    """The record store or its input-URL index could not be reached.

    Callers that serve cached data catch this and fall back to their last
    good result instead of failing the request.
    """

    pass


class RecordParseError(YinyangError):
    """A stored request record is not valid JSON or lacks a request id."""

    def __init__(self, request_id: str, reason: str) -> None:
        super().__init__(f"Record {request_id} could not be parsed: {reason}")
        self.request_id = request_id
        self.reason = reason
