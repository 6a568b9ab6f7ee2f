"""
callwatch: call lifecycle events from a FreeSWITCH event socket.

Components:
- services.esl_client.ESLSession: connect/authenticate/subscribe/stream
- services.frame_source.FrameSource: event socket framing
- handlers.event_parser: frame bodies to flat event records
- handlers.event_classifier: event records to call events
- observers: sinks for call events (log lines, counters, callbacks)
"""

__version__ = "0.1.0"
