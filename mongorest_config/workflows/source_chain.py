"""Workflow that runs the source tiers in order and merges their results."""
import logging
from typing import Optional

from ..domains.environment import ConfigEnvironment
from ..domains.models import DEFAULT_MONGODB_URI, MONGODB_URI_PROPERTY, PropertyBag
from ..domains.profile import resolve_active_profile
from ..domains.sources import (
    CloudRunEnvSource,
    DirectEnvFallbackSource,
    ResolutionContext,
    SecretManagerApiSource,
)

logger = logging.getLogger(__name__)


class SourceChain:
    """
    Ordered attempt sequence over the three source tiers.

    Behavior:
        - Cloud Run env var first; a non-empty result is the primary bag
        - Otherwise the Secret Manager API; a fatal result aborts resolution
        - The direct env var tier then fills the MongoDB URI if still missing
    """

    def __init__(
        self,
        cloud_run: Optional[CloudRunEnvSource] = None,
        secret_manager: Optional[SecretManagerApiSource] = None,
        direct_env: Optional[DirectEnvFallbackSource] = None,
    ):
        self.cloud_run = cloud_run or CloudRunEnvSource()
        self.secret_manager = secret_manager or SecretManagerApiSource()
        self.direct_env = direct_env or DirectEnvFallbackSource()

    def resolve(self, context: ResolutionContext) -> PropertyBag:
        """
        Produce the merged property bag.

        Raises:
            SecretResolutionError: If the Secret Manager tier fails fatally
        """
        primary = self.cloud_run.attempt(context, PropertyBag()).raise_for_fatal()

        if primary.is_empty():
            primary = self.secret_manager.attempt(context, primary).raise_for_fatal()

        fallback = self.direct_env.attempt(context, primary).raise_for_fatal()
        merged = primary.merged(fallback)

        if merged.is_empty():
            logger.debug("No properties resolved from any source")

        if MONGODB_URI_PROPERTY not in merged and not context.environment.contains_property(MONGODB_URI_PROPERTY):
            logger.warning(
                f"Loaded config does not contain '{MONGODB_URI_PROPERTY}'. "
                f"MongoDB will use default ({DEFAULT_MONGODB_URI}). Add the URI to the secret "
                f"or set SPRING_DATA_MONGODB_URI env var."
            )
        return merged


def resolve_properties(environment: ConfigEnvironment, chain: Optional[SourceChain] = None) -> PropertyBag:
    """
    Resolve the active profile and run the source chain against the environment.

    Args:
        environment: Environment with static config files already loaded
        chain: Source chain to use (default tiers when None)

    Returns:
        Merged property bag, possibly empty

    Raises:
        SecretResolutionError: If startup must abort
    """
    profile = resolve_active_profile(environment)
    logger.debug(f"Resolving startup properties for profile: {profile}")
    context = ResolutionContext(environment=environment, profile=profile)
    return (chain or SourceChain()).resolve(context)
