"""GCP Secret Manager client wrapper."""
import logging
from typing import Callable, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .models import SecretReference, SecretResolutionError

logger = logging.getLogger(__name__)

SECRET_ACCESSOR_ROLE = "roles/secretmanager.secretAccessor"

ClientFactory = Callable[[], secretmanager.SecretManagerServiceClient]


class GCPSecretClient:
    """
    Fetches secret payloads from GCP Secret Manager.

    A fresh SecretManagerServiceClient is created for every fetch and closed
    when the call returns, so no transport outlives startup.

    Args:
        client_factory: Callable returning a SecretManagerServiceClient
        timeout: Per-call timeout in seconds; None keeps the library default
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None, timeout: Optional[float] = None):
        self._client_factory = client_factory or secretmanager.SecretManagerServiceClient
        self.timeout = timeout

    def fetch_payload(self, reference: SecretReference) -> bytes:
        """
        Fetch the raw payload of a secret version.

        Args:
            reference: Secret to access

        Returns:
            Payload bytes (may be empty)

        Raises:
            SecretResolutionError: If the secret is missing, access is denied,
                or the call fails for any other reason
        """
        name = reference.resource_name
        logger.debug(f"Accessing secret version: {name}")

        kwargs = {"request": {"name": name}}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        try:
            with self._client_factory() as client:
                response = client.access_secret_version(**kwargs)
                return response.payload.data
        except gcp_exceptions.NotFound as e:
            logger.error(
                f"Secret '{reference.secret_id}' not found in project '{reference.project_id}'. "
                f"Please create the secret in GCP Secret Manager."
            )
            raise SecretResolutionError(
                f"Secret not found: {reference.secret_id} (project '{reference.project_id}'). "
                f"Create it with: gcloud secrets create {reference.secret_id} --project {reference.project_id}",
                secret_id=reference.secret_id,
                project_id=reference.project_id,
            ) from e
        except gcp_exceptions.PermissionDenied as e:
            logger.error(
                f"Permission denied accessing secret '{reference.secret_id}' in project "
                f"'{reference.project_id}'. Please check your GCP credentials and IAM permissions."
            )
            raise SecretResolutionError(
                f"Permission denied accessing secret: {reference.secret_id} (project "
                f"'{reference.project_id}'). The runtime service account needs {SECRET_ACCESSOR_ROLE}.",
                secret_id=reference.secret_id,
                project_id=reference.project_id,
            ) from e
        except Exception as e:
            logger.error(f"Failed to load secrets from GCP Secret Manager API: {e}")
            raise SecretResolutionError(
                f"Failed to load secret {reference.secret_id} from GCP Secret Manager "
                f"(project '{reference.project_id}'): {e}",
                secret_id=reference.secret_id,
                project_id=reference.project_id,
            ) from e
