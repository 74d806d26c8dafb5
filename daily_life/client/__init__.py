"""Client side of the data service: HTTP client and cache."""

from .client import DataServiceClient
from .cache import JournalCache
from .schemas import ExportArtifact

__all__ = [
    "DataServiceClient",
    "JournalCache",
    "ExportArtifact"
]
