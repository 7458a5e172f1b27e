"""
Common Package

Shared infrastructure for the gamification engine: logging, configuration,
error types, serialization and connections to the backing stores.
"""
