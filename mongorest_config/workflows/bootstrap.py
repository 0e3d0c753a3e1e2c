"""Startup sequence: static config files, then secret resolution, then injection."""
import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from ..domains.config_loader import load_application_config
from ..domains.environment import ConfigEnvironment
from .property_injector import install_properties
from .source_chain import SourceChain, resolve_properties

logger = logging.getLogger(__name__)


def bootstrap_environment(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    config_dir: Optional[Union[str, Path]] = None,
    chain: Optional[SourceChain] = None,
) -> ConfigEnvironment:
    """
    Build the process configuration namespace. Call once, before anything reads config.

    Steps:
        1. Command line (--key=value) and OS environment sources
        2. application.yml and application-{profile}.yml
        3. Source chain (Cloud Run env var, Secret Manager API, direct env var)
        4. Resolved properties installed below the command line source

    Args:
        argv: Command line arguments
        environ: OS environment (defaults to os.environ)
        config_dir: Directory with application.yml
        chain: Source chain override

    Returns:
        The ready ConfigEnvironment

    Raises:
        ConfigError: If a static config file is invalid
        SecretResolutionError: If the Secret Manager tier fails; startup must abort
    """
    environment = ConfigEnvironment(environ=environ, argv=argv)
    load_application_config(environment, config_dir)

    bag = resolve_properties(environment, chain)
    install_properties(environment, bag)

    logger.debug(f"Environment ready: {environment.snapshot()}")
    return environment
