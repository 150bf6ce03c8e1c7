"""
SMCCCD Site Index Service

A-Z directory of district web resources with a read-through Redis cache
in front of PostgreSQL queries.
"""

__version__ = "1.0.0"
