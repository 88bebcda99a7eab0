"""Tenant ownership capabilities declared by table models.

Each tenant-owned model inherits one or more capability mixins. The scope
engine dispatches on these declarations; it never probes models for
attributes at runtime.
"""


class TenantOwned:
    """Marker for models whose rows belong to one or more firms.

    Subclassing this alone is a configuration error: a model must also
    declare how it reaches its owning firm.
    """


class HasFirmMembership(TenantOwned):
    """Principals: rows carry the firm the user belongs to (``firm_id``)."""


class IsTenant(TenantOwned):
    """The firm table itself."""


class HasFirmAssociations(TenantOwned):
    """Aggregates linked to firms through the ``project_firms`` edge."""


class HasProjectOwnership(TenantOwned):
    """Rows owned by a project (``project_id``), visible through its firms."""


class HasFirmOwnership(TenantOwned):
    """Rows carrying a direct ``firm_id`` reference."""


CAPABILITIES: tuple[type[TenantOwned], ...] = (
    HasFirmMembership,
    IsTenant,
    HasFirmAssociations,
    HasProjectOwnership,
    HasFirmOwnership,
)


def capabilities_of(model: type) -> frozenset[type[TenantOwned]]:
    """Return the capabilities a model declares (empty for non tenant models)."""
    return frozenset(cap for cap in CAPABILITIES if issubclass(model, cap))
