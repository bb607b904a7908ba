"""
Tweet Archive - Search Service

FastAPI service that ingests a downloaded tweet archive (zip) into
PostgreSQL and serves ranked full-text search over the stored tweets.
"""

__version__ = "0.1.0"
