"""
Plugin domain objects for docket.

A plugin is a named sub-artifact of a release package. There are two kinds:
- StandalonePlugin: the package's only plugin, named after the repository
- PackagedPlugin: one of several plugins bundled by an integration package

Both kinds report the version, release date, changelog URL and tag of the
package they belong to. They differ only in where their documentation
lives and how they describe themselves.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Protocol, Union, runtime_checkable

from .artifact_name import ALL_TYPES, PLUGIN_TYPES, ArtifactName

if TYPE_CHECKING:
    from .release_package import ReleasePackage

DOC_EXTENSION = ".asciidoc"


@runtime_checkable
class PluginLike(Protocol):
    """What callers can ask of any plugin."""
    package: 'ReleasePackage'
    artifact: ArtifactName
    desc: str

    @property
    def type(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def canonical_name(self) -> str: ...

    @property
    def version(self) -> Optional[str]: ...

    @property
    def tag(self) -> str: ...

    def release_date(self) -> Optional[datetime]: ...

    def changelog_url(self) -> str: ...

    def documentation(self) -> Optional[str]: ...


class _FromPackage:
    """Descriptor forwarding an attribute to the plugin's package."""

    def __set_name__(self, owner, name):
        self.attr = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return getattr(instance.package, self.attr)


class _FromArtifact:
    """Descriptor forwarding an attribute to the plugin's parsed name."""

    def __set_name__(self, owner, name):
        self.attr = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return getattr(instance.artifact, self.attr)


@dataclass(frozen=True)
class StandalonePlugin:
    """The single plugin of a non-integration package."""
    package: 'ReleasePackage'
    artifact: ArtifactName
    desc: str = field(init=False, compare=False, repr=False)

    type = _FromArtifact()
    name = _FromArtifact()
    canonical_name = _FromArtifact()
    version = _FromPackage()
    tag = _FromPackage()
    release_date = _FromPackage()
    changelog_url = _FromPackage()

    def __post_init__(self):
        object.__setattr__(self, 'desc', self.package.desc)

    @classmethod
    def for_package(cls, package: 'ReleasePackage') -> 'StandalonePlugin':
        """
        Build the plugin named after the package's repository.

        Raises:
            ValidationError: if the repository name is not a canonical name
        """
        repository = package.repository
        artifact = ArtifactName.parse(repository.name, prefix=repository.prefix, allowed_types=ALL_TYPES)
        return cls(package=package, artifact=artifact)

    @property
    def documentation_path(self) -> str:
        return f"docs/index{DOC_EXTENSION}"

    def documentation(self) -> Optional[str]:
        """Documentation source at this release, or None if missing."""
        return self.package.read_file(self.documentation_path)


@dataclass(frozen=True)
class PackagedPlugin:
    """A plugin bundled inside an integration package."""
    package: 'ReleasePackage'
    artifact: ArtifactName
    desc: str = field(init=False, compare=False, repr=False)

    type = _FromArtifact()
    name = _FromArtifact()
    canonical_name = _FromArtifact()
    version = _FromPackage()
    tag = _FromPackage()
    release_date = _FromPackage()
    changelog_url = _FromPackage()

    def __post_init__(self):
        object.__setattr__(self, 'desc', f"{self.package.desc}/{self.artifact.name}")

    @classmethod
    def from_canonical_name(cls, package: 'ReleasePackage', canonical_name: str) -> 'PackagedPlugin':
        """
        Build a bundled plugin from its canonical name.

        Raises:
            ValidationError: if the name is malformed or of a type that
                cannot be bundled (e.g. another integration)
        """
        artifact = ArtifactName.parse(
            canonical_name,
            prefix=package.repository.prefix,
            allowed_types=PLUGIN_TYPES,
        )
        return cls(package=package, artifact=artifact)

    @property
    def documentation_path(self) -> str:
        return f"docs/{self.artifact.type}-{self.artifact.name}{DOC_EXTENSION}"

    @property
    def legacy_documentation_path(self) -> str:
        # Integrations released before per-plugin doc files kept one file per type.
        return f"docs/index-{self.artifact.type}{DOC_EXTENSION}"

    def documentation(self) -> Optional[str]:
        """Documentation source at this release, or None if missing."""
        content = self.package.read_file(self.documentation_path)
        if content is None:
            content = self.package.read_file(self.legacy_documentation_path)
        return content


Plugin = Union[StandalonePlugin, PackagedPlugin]
