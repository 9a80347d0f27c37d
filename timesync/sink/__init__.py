"""Status output: StatusSink interface and the TimeStatus publisher."""

from timesync.sink.publisher import StatusPublisher, StatusSink

__all__ = ["StatusPublisher", "StatusSink"]
