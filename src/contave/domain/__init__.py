"""Domain layer for contave.

Services are loaded on first access: the database package imports
``contave.domain.entities`` and the services import the database package.
"""

from importlib import import_module

_SERVICES = {
    "AccountService": "contave.domain.account",
    "AuthService": "contave.domain.auth",
    "CompanyService": "contave.domain.company",
    "JournalService": "contave.domain.journal",
    "PeriodService": "contave.domain.period",
    "SequenceAllocator": "contave.domain.sequence",
    "ThirdPartyService": "contave.domain.third_party",
    "UserService": "contave.domain.user",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
