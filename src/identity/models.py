"""Data models for dependency coordinates and canonical identifiers."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Ecosystem(Enum):
    """Enum for supported ecosystems."""
    MAVEN = "maven"
    NPM = "npm"


@dataclass(frozen=True)
class MavenCoordinate:
    """Raw ``mvn dependency:list`` entry."""
    group_id: str
    artifact_id: str
    packaging: str
    version: str
    scope: str
    classifier: Optional[str] = None


@dataclass(frozen=True)
class NpmCoordinate:
    """npm/yarn package name split into optional scope, name and version."""
    scope: Optional[str]  # "@types" or None
    name: str
    version: str


@dataclass(frozen=True)
class YarnAlias:
    """Yarn berry entry carrying an ``@npm:`` or ``@virtual:<hash>#npm:`` suffix."""
    alias_prefix: str  # "npm:" or "virtual:<hash>#npm:"
    real_name: str
    real_version: str


@dataclass(frozen=True)
class LedgerCoordinate:
    """Tagged parse of a ledger coordinate such as ``npm/npmjs/-/react/18.0.0``.

    ``legacy`` is set for the ``cq/``-prefixed layout; every other field is
    shared by both layouts so a single extraction routine serves them.
    """
    legacy: bool
    type: str
    provider: str
    namespace: str  # "-", "@scope" or a Maven groupId
    name: str
    revision: str

    @property
    def scoped(self) -> bool:
        return self.namespace.startswith("@")


@dataclass
class LicenseRecord:
    """License metadata for a single identifier."""
    identifier: str
    license: str = ""
    url: Optional[str] = None

    def merge(self, license_expr: Optional[str] = None, url: Optional[str] = None) -> None:
        """Overwrite a field only when the incoming value is non-empty."""
        if license_expr and license_expr.strip():
            self.license = license_expr.strip()
        if url and url.strip():
            self.url = url.strip()
