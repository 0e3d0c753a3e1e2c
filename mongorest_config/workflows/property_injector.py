"""Install resolved properties into the process configuration namespace."""
import logging
from typing import Optional

from ..domains.environment import COMMAND_LINE_SOURCE_NAME, ConfigEnvironment, PropertySource
from ..domains.models import PropertyBag

logger = logging.getLogger(__name__)

SECRET_PROPERTY_SOURCE_NAME = "gcp-secret-manager"


def install_properties(
    environment: ConfigEnvironment,
    bag: PropertyBag,
    source_name: str = SECRET_PROPERTY_SOURCE_NAME,
) -> Optional[PropertySource]:
    """
    Install a property bag as the highest-precedence read-only source.

    Command line arguments stay on top: when a command line source exists the
    bag goes directly below it, otherwise it goes first.

    Args:
        environment: Environment to install into
        bag: Resolved properties
        source_name: Name of the new property source

    Returns:
        The installed source, or None when the bag was empty

    Raises:
        ValueError: If a source with the same name is already installed
    """
    if bag.is_empty():
        logger.debug("Nothing to install, leaving property sources unchanged")
        return None

    source = PropertySource(source_name, bag.properties)
    if environment.get_source(COMMAND_LINE_SOURCE_NAME) is not None:
        environment.add_after(COMMAND_LINE_SOURCE_NAME, source)
    else:
        environment.add_first(source)

    logger.info(f"Successfully loaded {len(source)} properties into environment (from {bag.source})")
    return source
