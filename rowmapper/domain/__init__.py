"""
Domain package for rowmapper.

Exports the example record types mapped by the CLI and integration tests.
"""

from rowmapper.domain.models import Article

__all__ = [
    "Article",
]
