"""Exception types raised across the alerting workflow."""
from __future__ import annotations


class PackageAlertsError(Exception):
    """Base class for errors raised by this package."""


class PackageNotFoundError(PackageAlertsError, KeyError):
    """A package name is absent from the Registry or the catalog."""

    def __init__(self, name: str, where: str = "registry") -> None:
        super().__init__(f"Package {name!r} not found in {where}")
        self.name = name
        self.where = where

    def __str__(self) -> str:
        return str(self.args[0])


class CatalogUnavailableError(PackageAlertsError):
    """The catalog source could not be read."""


class InvalidRecipientError(PackageAlertsError):
    """The e-mail transport refused a recipient address."""


class EmailDeliveryError(PackageAlertsError):
    """The e-mail transport failed while sending a message."""


class ChainBusyError(PackageAlertsError):
    """A run of the task chain is already in progress."""

    def __init__(self, chain_name: str) -> None:
        super().__init__(f"Chain {chain_name!r} is already running")
        self.chain_name = chain_name
