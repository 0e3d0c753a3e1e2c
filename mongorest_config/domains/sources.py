"""Property sources consulted at startup, one class per tier.

Tiers, highest precedence first:
    1. CloudRunEnvSource        - secret exposed by Cloud Run as an env var
    2. SecretManagerApiSource   - secret read through the Secret Manager API
    3. DirectEnvFallbackSource  - MongoDB URI from a plain env var

Every source returns a SourceAttemptResult. Only tier 2 ever produces a fatal
result; everything else degrades to an empty bag.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .environment import ConfigEnvironment
from .gcp_client import GCPSecretClient
from .models import (
    LOCAL_PROFILE,
    MONGODB_URI_PROPERTY,
    PropertyBag,
    SecretReference,
    SecretResolutionError,
    SourceAttemptResult,
)
from .properties_format import PropertiesParseError, parse_properties

logger = logging.getLogger(__name__)

CLOUDRUN_SECRET_ENV_VAR_PROPERTY = "gcp.secretmanager.cloudrun-secret-env-var"
CLOUDRUN_SECRET_ENV_VAR = "GCP_CLOUDRUN_SECRET_ENV_VAR"
GCP_SECRET_ENABLED_PROPERTY = "gcp.secretmanager.enabled"
GCP_PROJECT_ID_PROPERTY = "gcp.secretmanager.project-id"
GCP_TIMEOUT_PROPERTY = "gcp.secretmanager.timeout-seconds"
PROJECT_ID_ENV_VARS = ("GCP_SECRETMANAGER_PROJECT_ID", "GCP_PROJECT_ID")
# Dotted name last: most platforms reject dots in variable names
MONGODB_URI_ENV_VARS = ("SPRING_DATA_MONGODB_URI", "MONGODB_URI", "spring.data.mongodb.uri")


@dataclass(frozen=True)
class ResolutionContext:
    """What every source may look at: the environment and the active profile."""
    environment: ConfigEnvironment
    profile: Optional[str]


class SecretSource(ABC):
    """One tier of the source chain."""

    name: str = "secret-source"

    @abstractmethod
    def attempt(self, context: ResolutionContext, current: PropertyBag) -> SourceAttemptResult:
        """Try to produce properties; ``current`` is what earlier tiers resolved."""


def _first_non_empty(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


class CloudRunEnvSource(SecretSource):
    """Secret mounted by Cloud Run "Reference a secret" as an env var holding properties text."""

    name = "cloud-run-env"

    def discover_env_var_name(self, context: ResolutionContext) -> Optional[str]:
        """
        Work out which env var holds the secret.

        Priority order:
        1. gcp.secretmanager.cloudrun-secret-env-var property
        2. GCP_CLOUDRUN_SECRET_ENV_VAR env var
        3. First of backend-{profile}-secret, backend-prod-secret that is set
        """
        environment = context.environment
        explicit = _first_non_empty(
            environment.get_property(CLOUDRUN_SECRET_ENV_VAR_PROPERTY),
            environment.getenv(CLOUDRUN_SECRET_ENV_VAR),
        )
        if explicit:
            return explicit

        candidates = ["backend-prod-secret"]
        if context.profile:
            candidates.insert(0, f"backend-{context.profile}-secret")
        for candidate in candidates:
            if environment.getenv(candidate) is not None:
                return candidate
        return None

    def attempt(self, context: ResolutionContext, current: PropertyBag) -> SourceAttemptResult:
        env_var = self.discover_env_var_name(context)
        if not env_var:
            logger.debug("No Cloud Run secret env var found")
            return SourceAttemptResult.empty(self.name)

        secret_value = context.environment.getenv(env_var)
        if not secret_value:
            logger.debug(f"Cloud Run secret env var '{env_var}' is unset or empty")
            return SourceAttemptResult.empty(self.name)

        try:
            properties = parse_properties(secret_value)
        except PropertiesParseError as e:
            logger.warning(f"Failed to parse Cloud Run secret env var '{env_var}': {e}")
            return SourceAttemptResult.empty(self.name)

        logger.info(f"Loaded {len(properties)} properties from Cloud Run secret env var: {env_var}")
        return SourceAttemptResult(bag=PropertyBag(properties, f"{self.name}:{env_var}"))


class SecretManagerApiSource(SecretSource):
    """
    Secret ``webflux-mongodb-rest-{profile}`` read through the Secret Manager API.

    Args:
        client: GCPSecretClient to fetch with; built from configuration when None
    """

    name = "gcp-secret-manager-api"

    def __init__(self, client: Optional[GCPSecretClient] = None):
        self._client = client

    def resolve_project_id(self, environment: ConfigEnvironment) -> Optional[str]:
        """
        Get GCP project ID from config or environment variables.

        Priority order:
        1. gcp.secretmanager.project-id property
        2. GCP_SECRETMANAGER_PROJECT_ID env var
        3. GCP_PROJECT_ID env var
        """
        return _first_non_empty(
            environment.get_property(GCP_PROJECT_ID_PROPERTY),
            *(environment.getenv(name) for name in PROJECT_ID_ENV_VARS),
        )

    def _get_client(self, environment: ConfigEnvironment) -> GCPSecretClient:
        if self._client is None:
            self._client = GCPSecretClient(timeout=environment.get_float(GCP_TIMEOUT_PROPERTY))
        return self._client

    def attempt(self, context: ResolutionContext, current: PropertyBag) -> SourceAttemptResult:
        environment = context.environment

        if not environment.get_bool(GCP_SECRET_ENABLED_PROPERTY, False):
            logger.debug("GCP Secret Manager is disabled. Skipping API load.")
            return SourceAttemptResult.empty(self.name)

        if not context.profile:
            logger.debug("No active profile found. Skipping GCP Secret Manager API.")
            return SourceAttemptResult.empty(self.name)

        if context.profile == LOCAL_PROFILE:
            logger.debug("Local profile detected. Skipping GCP Secret Manager API.")
            return SourceAttemptResult.empty(self.name)

        project_id = self.resolve_project_id(environment)
        if not project_id:
            logger.warning(
                f"GCP project ID not configured. Set {GCP_PROJECT_ID_PROPERTY} "
                f"or GCP_PROJECT_ID env var."
            )
            return SourceAttemptResult.empty(self.name)

        reference = SecretReference.for_profile(project_id, context.profile)
        logger.info(
            f"Loading secrets from GCP Secret Manager API: "
            f"project={reference.project_id}, secret={reference.secret_id}"
        )

        try:
            payload = self._get_client(environment).fetch_payload(reference)
        except SecretResolutionError as e:
            return SourceAttemptResult.fatal(self.name, e)

        if not payload:
            logger.warning(f"Secret '{reference.secret_id}' is empty")
            return SourceAttemptResult.empty(self.name)

        try:
            properties = parse_properties(payload)
        except PropertiesParseError as e:
            logger.error(f"Secret '{reference.secret_id}' is not valid properties text: {e}")
            return SourceAttemptResult.fatal(self.name, SecretResolutionError(
                f"Secret {reference.secret_id} in project '{reference.project_id}' "
                f"could not be parsed as properties: {e}",
                secret_id=reference.secret_id,
                project_id=reference.project_id,
            ))

        logger.debug(f"Parsed {len(properties)} properties from secret")
        return SourceAttemptResult(bag=PropertyBag(properties, f"{self.name}:{reference.secret_id}"))


class DirectEnvFallbackSource(SecretSource):
    """MongoDB URI taken straight from an env var when no earlier tier supplied it."""

    name = "direct-env"

    def attempt(self, context: ResolutionContext, current: PropertyBag) -> SourceAttemptResult:
        if MONGODB_URI_PROPERTY in current:
            logger.debug(f"'{MONGODB_URI_PROPERTY}' already resolved by {current.source}")
            return SourceAttemptResult.empty(self.name)

        for env_var in MONGODB_URI_ENV_VARS:
            mongo_uri = context.environment.getenv(env_var)
            if mongo_uri:
                logger.info(f"Using MongoDB URI from env var {env_var}")
                return SourceAttemptResult(
                    bag=PropertyBag({MONGODB_URI_PROPERTY: mongo_uri}, f"{self.name}:{env_var}")
                )

        logger.debug("No MongoDB URI env var set")
        return SourceAttemptResult.empty(self.name)
