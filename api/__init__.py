"""Disclosure Ingest HTTP API."""
