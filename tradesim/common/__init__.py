"""Shared infrastructure: configuration, logging, exceptions, metrics, schemas."""
