"""
Core business logic for coaching-session booking.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. Storage is reached through the repository
protocols declared next to the code that needs them.
"""
