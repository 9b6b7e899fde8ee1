"""Exception taxonomy shared by the session components."""

from __future__ import annotations


class PickerError(Exception):
    """Base class for every error raised by the movie picker core."""

    code = "picker_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code.replace("_", " "))

    def to_payload(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


class CatalogError(PickerError):
    code = "catalog_error"


class MalformedRecord(CatalogError):
    """A raw feed row could not be split into ``(id, year, title)``."""

    code = "malformed_record"

    def __init__(self, row: object, message: str | None = None) -> None:
        self.row = row
        super().__init__(message or f"Malformed catalog record: {row!r}")


class AlreadyLoaded(CatalogError):
    code = "already_loaded"


class CatalogFeedError(CatalogError):
    """The bulk catalog feed could not be fetched or decoded."""

    code = "catalog_feed_error"


class SelectionError(PickerError):
    code = "selection_error"


class CapacityExceeded(SelectionError):
    code = "capacity_exceeded"


class DuplicateSelection(SelectionError):
    code = "duplicate_selection"


class NotSelected(SelectionError):
    code = "not_selected"


class UnknownMovie(SelectionError):
    code = "unknown_movie"


class ChannelError(PickerError):
    code = "channel_error"


class NotConnected(ChannelError):
    code = "not_connected"


class SendFailed(ChannelError):
    code = "send_failed"


class ConnectFailed(ChannelError):
    code = "connect_failed"


class ProtocolViolation(ChannelError):
    code = "protocol_violation"


class ConnectionLost(ChannelError):
    """The connection dropped after it had been established."""

    code = "connection_lost"


class SubmissionError(PickerError):
    code = "submission_error"


class IncompleteSelection(SubmissionError):
    code = "incomplete_selection"


class SubmissionInFlight(SubmissionError):
    code = "submission_in_flight"


class SessionNotReady(SubmissionError):
    code = "session_not_ready"
