from .base import CatalogProvider
from .curated import CuratedCatalogProvider
from .openngc import OpenNgcProvider, ParseResult, SkippedRow


def get_catalog_providers(config):
    curated = CuratedCatalogProvider(catalog_path=config.curated_path)
    dynamic = None
    if config.catalog_enabled:
        dynamic = OpenNgcProvider(source=config.openngc_url, timeout_s=config.catalog_timeout_s)
    return curated, dynamic

__all__ = [
    "CatalogProvider",
    "CuratedCatalogProvider",
    "OpenNgcProvider",
    "ParseResult",
    "SkippedRow",
    "get_catalog_providers",
]
