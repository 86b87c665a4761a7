"""
Backend package for the classroom image-critique service.

This package provides a FastAPI application with storage and database
abstractions so the same handlers run against SQLite locally and against
PostgreSQL or Supabase in production.
"""
