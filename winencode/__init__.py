"""Encoders for Windows GUIDs, reparse points and TraceLogging events, plus a logging handler."""

__version__ = "0.1.0"
__all__ = ["guid", "reparse", "etw", "etwlogging"]