"""
adminkit - Generic administrative client for CRUD resources.

This package provides the reusable pieces behind the list, create, edit and
view pages of an admin interface. Every entity is handled by the same code,
parameterized by an entity descriptor.

Key modules:
- entities: Entity descriptors, field specs and the default registry
- query: Query descriptor (filters, sorting, pagination) and result pages
- validation: Per-entity validation schema checked before submission
- api_client: HTTP client wrapping httpx, error taxonomy for transport failures
- resource_client: Typed CRUD operations for one entity
- linked_records: Search-as-you-type resolution of foreign-key references
- auth: Authorization context and capability checks
- form_controller: Authorization-gated form state machine
- pages: List and view page controllers
- config: Client configuration management
"""

import os
from importlib.metadata import PackageNotFoundError, version


def _get_version() -> str:
    """
    Get version with priority: ADMINKIT_VERSION env var > installed metadata > fallback.
    """
    env_version = os.environ.get("ADMINKIT_VERSION")
    if env_version:
        return env_version

    try:
        return version("adminkit")
    except PackageNotFoundError:
        return "0.0.0-dev"


__version__ = _get_version()
