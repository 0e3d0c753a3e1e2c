"""Domain models for startup configuration resolution."""
from dataclasses import dataclass, field
from typing import Dict, Optional

MONGODB_URI_PROPERTY = "spring.data.mongodb.uri"
DEFAULT_MONGODB_URI = "mongodb://localhost:27017"
LOCAL_PROFILE = "local"
SECRET_NAME_PREFIX = "webflux-mongodb-rest-"
LATEST_VERSION = "latest"


class SecretResolutionError(RuntimeError):
    """Fatal configuration error that must abort process startup."""

    def __init__(self, message: str, secret_id: Optional[str] = None, project_id: Optional[str] = None):
        super().__init__(message)
        self.secret_id = secret_id
        self.project_id = project_id


@dataclass
class PropertyBag:
    """Ordered set of resolved properties plus the name of what produced them."""
    properties: Dict[str, str] = field(default_factory=dict)
    source: str = "none"

    def __len__(self) -> int:
        return len(self.properties)

    def __contains__(self, key: object) -> bool:
        return key in self.properties

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.properties.get(key, default)

    def is_empty(self) -> bool:
        return not self.properties

    def merged(self, other: "PropertyBag") -> "PropertyBag":
        """
        Return a new bag with other's entries written over this one's.

        The provenance tag lists every non-empty contributor in merge order.
        """
        if other.is_empty():
            return PropertyBag(dict(self.properties), self.source)
        if self.is_empty():
            return PropertyBag(dict(other.properties), other.source)
        properties = dict(self.properties)
        properties.update(other.properties)
        return PropertyBag(properties, f"{self.source}+{other.source}")


@dataclass(frozen=True)
class SecretReference:
    """Identifies one version of a secret in GCP Secret Manager."""
    project_id: str
    secret_id: str
    version: str = LATEST_VERSION

    @classmethod
    def for_profile(cls, project_id: str, profile: str) -> "SecretReference":
        return cls(project_id=project_id, secret_id=SECRET_NAME_PREFIX + profile)

    @property
    def resource_name(self) -> str:
        return f"projects/{self.project_id}/secrets/{self.secret_id}/versions/{self.version}"


@dataclass
class SourceAttemptResult:
    """Outcome of a single source attempt: a bag (possibly empty) or a fatal error."""
    bag: PropertyBag
    error: Optional[SecretResolutionError] = None

    @classmethod
    def empty(cls, source: str) -> "SourceAttemptResult":
        return cls(bag=PropertyBag(source=source))

    @classmethod
    def fatal(cls, source: str, error: SecretResolutionError) -> "SourceAttemptResult":
        return cls(bag=PropertyBag(source=source), error=error)

    @property
    def is_fatal(self) -> bool:
        return self.error is not None

    def raise_for_fatal(self) -> PropertyBag:
        """Return the bag, or raise the fatal error this attempt carries."""
        if self.error is not None:
            raise self.error
        return self.bag
