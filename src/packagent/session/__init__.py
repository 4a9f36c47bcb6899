"""Run session plumbing — the progress event wire."""

from packagent.session.wire import EventType, Wire, WireEvent

__all__ = ["EventType", "Wire", "WireEvent"]
