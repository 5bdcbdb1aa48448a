"""Domain layer for shelby.

Services are imported lazily: the database layer imports the entities and
errors of this package, and the services import the database layer.
"""

_SERVICES = {
    "PersonService": "shelby.domain.person",
    "GroupService": "shelby.domain.person",
    "MembershipService": "shelby.domain.membership",
    "AccountService": "shelby.domain.accounting",
    "CategoryService": "shelby.domain.accounting",
    "CostCenterService": "shelby.domain.accounting",
    "DocumentService": "shelby.domain.document",
    "UserService": "shelby.domain.user",
    "LedgerService": "shelby.domain.ledger",
    "ListingService": "shelby.domain.listing",
}

__all__ = sorted(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
