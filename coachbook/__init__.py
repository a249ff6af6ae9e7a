"""
Coachbook - booking backend for coaching sessions.

This package contains the complete application:
- core: Framework-agnostic availability and booking logic
- infrastructure: Document storage (Snowflake or in-memory)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
