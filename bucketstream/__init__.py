"""
Bucket Stream - a presigning download proxy for object storage.

This package contains the complete application:
- core: Framework-agnostic domain models and errors
- infrastructure: Object storage presigning and the outbound HTTP fetch
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
