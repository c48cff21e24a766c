"""
API Services Layer.

Database operations behind the API endpoints. Every function takes the
request's AsyncSession and raises core.errors exceptions on failure.
"""
