"""
Document store access.

Responsibilities:
- Read MongoDB connection settings from the environment.
- Hold the single process-wide client, opened at startup and shared by
  every request.
"""
