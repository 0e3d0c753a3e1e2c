"""Process configuration namespace: an ordered stack of named property sources."""
import logging
import os
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

COMMAND_LINE_SOURCE_NAME = "commandLineArgs"
SYSTEM_ENVIRONMENT_SOURCE_NAME = "systemEnvironment"
ACTIVE_PROFILES_PROPERTY = "spring.profiles.active"

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


class PropertySource:
    """A named, read-only mapping of properties."""

    def __init__(self, name: str, properties: Mapping[str, str]):
        self.name = name
        self._properties = MappingProxyType(dict(properties))

    @property
    def properties(self) -> Mapping[str, str]:
        return self._properties

    def get(self, key: str) -> Optional[str]:
        return self._properties.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._properties

    def __len__(self) -> int:
        return len(self._properties)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, size={len(self)})"


class EnvironmentPropertySource(PropertySource):
    """
    Property source over OS environment variables with relaxed binding.

    ``spring.data.mongodb.uri`` matches the variable of that exact name first,
    then ``SPRING_DATA_MONGODB_URI``.
    """

    @staticmethod
    def _relaxed_name(key: str) -> str:
        return key.replace(".", "_").replace("-", "_").upper()

    def get(self, key: str) -> Optional[str]:
        value = self._properties.get(key)
        if value is None:
            value = self._properties.get(self._relaxed_name(key))
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None


def parse_command_line_args(argv: Sequence[str]) -> Dict[str, str]:
    """Collect ``--key=value`` options; anything else is ignored."""
    properties: Dict[str, str] = {}
    for arg in argv:
        if not arg.startswith("--") or "=" not in arg:
            continue
        key, value = arg[2:].split("=", 1)
        if key:
            properties[key] = value
    return properties


class ConfigEnvironment:
    """
    Configuration namespace shared by the whole process.

    Lookups walk the property sources in order and return the first hit, so
    index 0 has the highest precedence.

    Args:
        environ: Raw OS environment (defaults to ``os.environ``)
        argv: Command line arguments; ``--key=value`` entries become the
            highest-precedence source
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None, argv: Optional[Sequence[str]] = None):
        self._environ: Mapping[str, str] = os.environ if environ is None else environ
        self._sources: List[PropertySource] = []
        self._active_profiles: List[str] = []

        if argv:
            command_line = parse_command_line_args(argv)
            if command_line:
                self._sources.append(PropertySource(COMMAND_LINE_SOURCE_NAME, command_line))
        self._sources.append(EnvironmentPropertySource(SYSTEM_ENVIRONMENT_SOURCE_NAME, self._environ))

    # -- raw process environment ---------------------------------------

    def getenv(self, name: str) -> Optional[str]:
        """Read a variable straight from the process environment."""
        return self._environ.get(name)

    # -- property sources ----------------------------------------------

    def source_names(self) -> List[str]:
        return [source.name for source in self._sources]

    def get_source(self, name: str) -> Optional[PropertySource]:
        for source in self._sources:
            if source.name == name:
                return source
        return None

    def _check_unique(self, source: PropertySource) -> None:
        if self.get_source(source.name) is not None:
            raise ValueError(f"Property source '{source.name}' is already installed")

    def add_first(self, source: PropertySource) -> None:
        self._check_unique(source)
        self._sources.insert(0, source)

    def add_last(self, source: PropertySource) -> None:
        self._check_unique(source)
        self._sources.append(source)

    def _index_of(self, name: str) -> int:
        for index, existing in enumerate(self._sources):
            if existing.name == name:
                return index
        raise ValueError(f"Property source '{name}' does not exist")

    def add_before(self, relative_name: str, source: PropertySource) -> None:
        self._check_unique(source)
        self._sources.insert(self._index_of(relative_name), source)

    def add_after(self, relative_name: str, source: PropertySource) -> None:
        self._check_unique(source)
        self._sources.insert(self._index_of(relative_name) + 1, source)

    # -- lookups -------------------------------------------------------

    def get_property(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for source in self._sources:
            value = source.get(key)
            if value is not None:
                return value
        return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get_property(key)
        if value is None or value.strip() == "":
            return default
        normalized = value.strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        raise ValueError(f"Property '{key}' is not a boolean: {value!r}")

    def get_float(self, key: str) -> Optional[float]:
        value = self.get_property(key)
        if value is None or value.strip() == "":
            return None
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"Property '{key}' is not a number: {value!r}") from None

    def contains_property(self, key: str) -> bool:
        return self.get_property(key) is not None

    # -- profiles ------------------------------------------------------

    @property
    def active_profiles(self) -> List[str]:
        return list(self._active_profiles)

    def set_active_profiles(self, *profiles: str) -> None:
        self._active_profiles = [p.strip() for p in profiles if p and p.strip()]
        logger.debug(f"Active profiles set to: {self._active_profiles}")

    def snapshot(self) -> Dict[str, Any]:
        """Return source names and sizes for diagnostics; values are never included."""
        return {
            "active_profiles": self.active_profiles,
            "property_sources": [(source.name, len(source)) for source in self._sources],
        }
