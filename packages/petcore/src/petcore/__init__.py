"""
petcore - shared infrastructure for the pet shop platform.

Settings, database session handling, logging and the Redis client live here
so that the engine package and the API app read configuration the same way.
"""
