"""Adapters connecting the core to files, streams and stdlib logging."""
