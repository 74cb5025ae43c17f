__version__ = "0.1.0"

from .app.main import (
    analyze_project,
    clear_cache,
    credential_status,
    evict_expired,
    get_cached_results,
    resolve_cache_key,
    save_credential,
    scan_project,
    test_credential,
)

__all__ = [
    "__version__",
    "scan_project",
    "analyze_project",
    "get_cached_results",
    "resolve_cache_key",
    "save_credential",
    "test_credential",
    "credential_status",
    "evict_expired",
    "clear_cache",
]

# stdlib logging defaults: attach NullHandler to prevent 'No handler' warnings
import logging
_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())
