"""TraceLogging event descriptors, metadata, data, options, fields and providers."""

__all__ = ["descriptor", "metadata", "data", "options", "fields", "provider"]