"""Role-to-folder access control."""

from contextpack.access.roles import (
    CachedRoleMappings,
    RoleFilter,
    StaticRoleMappings,
    filter_documents,
)

__all__ = ["CachedRoleMappings", "RoleFilter", "StaticRoleMappings", "filter_documents"]
