"""
Kinship backend package.

This package provides a FastAPI application for friend journaling: friend
connections, shared prompt questions, direct messages and an activity feed,
backed by interchangeable in-memory and SQLAlchemy storage clients.
"""
