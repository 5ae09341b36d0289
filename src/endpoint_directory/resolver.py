"""
Endpoint resolution: pick the server a client should contact.
"""

import random
from typing import Optional, Union

from .directory import Directory
from .endpoint import Endpoint
from .exceptions import EndpointError, NoEndpointAvailableError
from .logger import StructuredLogger


def resolve_endpoint(
    override: Optional[Union[str, Endpoint]],
    directory: Optional[Directory],
    rng: Optional[random.Random] = None,
    logger: Optional[StructuredLogger] = None,
) -> Optional[Endpoint]:
    """
    Choose one endpoint to contact.

    A valid override (user configuration) always wins, even over an empty
    directory. An invalid override is logged and ignored.

    Args:
        override: Configured server, as an address string or Endpoint
        directory: Current best directory, may be None
        rng: Optional random source for the directory pick
        logger: Optional logger

    Returns:
        The chosen Endpoint, or None when there is nothing to contact
    """
    if isinstance(override, Endpoint):
        return override

    if override:
        try:
            return Endpoint.parse(override)
        except EndpointError as e:
            if logger:
                logger.warn(
                    "Resolver",
                    f"Ignoring invalid server override: {e.message}",
                    {"override": override, "error_code": e.code},
                )

    if directory is None:
        return None
    return directory.pick_random(rng)


def require_endpoint(
    override: Optional[Union[str, Endpoint]],
    directory: Optional[Directory],
    rng: Optional[random.Random] = None,
    logger: Optional[StructuredLogger] = None,
) -> Endpoint:
    """
    Like resolve_endpoint, but fail when there is nothing to contact.

    Raises:
        NoEndpointAvailableError: If no endpoint can be chosen
    """
    endpoint = resolve_endpoint(override, directory, rng=rng, logger=logger)
    if endpoint is None:
        raise NoEndpointAvailableError(
            code="no_endpoint",
            message="No server override and no endpoint in the directory",
            details={"directory_size": len(directory) if directory is not None else 0},
        )
    return endpoint
