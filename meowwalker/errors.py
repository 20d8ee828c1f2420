"""
Error taxonomy for quoting, scheduling and persistence.
Every error carries a short message that can be shown to the user as is.
"""

from typing import Optional


class MeowWalkerError(Exception):
    """Base class for all recoverable application errors"""

    default_message = "Something went wrong, please try again"

    def __init__(self, user_message: Optional[str] = None):
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class InvalidConfiguration(MeowWalkerError):
    default_message = "No pricing tiers configured. Use /settiers first"


class MissingInput(MeowWalkerError):
    default_message = "Some required information is missing"


class MissingAddress(MissingInput):
    default_message = "Please enter the client's address"


class MissingOrigin(MissingInput):
    default_message = "Please set your starting address first (/setbase)"


class NoDatesSelected(MissingInput):
    default_message = "At least one visit date is required"


class MissingClientName(MissingInput):
    default_message = "Please enter the client's name"


class GeocodingFailure(MeowWalkerError):
    """Address could not be resolved to a coordinate"""

    def __init__(self, address: str, user_message: Optional[str] = None):
        self.address = address
        super().__init__(user_message or f'Could not locate address: "{address}"')


class RoutingFailure(MeowWalkerError):
    default_message = "Route planning failed, the addresses may be too far apart"


class NetworkTimeout(MeowWalkerError):
    default_message = "Map service connection timed out, please check the network"


class GeocodingTransportError(MeowWalkerError):
    default_message = "Could not calculate the route, please check the address"


class LocationUnavailable(MeowWalkerError):
    default_message = "Location lookup failed, please type the address instead"


class PersistenceFailure(MeowWalkerError):
    default_message = "Could not save data, changes are kept until restart"
