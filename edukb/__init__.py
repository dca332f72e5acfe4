"""
edukb: school-data loader for a Wikibase knowledge base
Idempotent ingestion of establishment, region, comuna and teacher rows
"""

__version__ = "0.1.0"

from edukb.settings import EduKBSettings, get_settings
from edukb.catalogs import Catalogs, DEFAULT_CATALOGS, Role, load_catalogs
from edukb.ingestion import IngestOptions, RunSummary, ingest

__all__ = [
    "EduKBSettings",
    "get_settings",
    "Catalogs",
    "DEFAULT_CATALOGS",
    "Role",
    "load_catalogs",
    "IngestOptions",
    "RunSummary",
    "ingest",
]
