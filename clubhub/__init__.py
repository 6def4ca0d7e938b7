"""
Backend package for the youth club management service.

This package provides a FastAPI application over a pluggable data store,
session cache and media storage so the same service code runs against
hosted Postgres/Redis/S3 in production and in-memory doubles in tests.
"""
