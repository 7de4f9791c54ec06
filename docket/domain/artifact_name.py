"""
Canonical artifact names.

A canonical name has three dash-separated parts, `<prefix>-<type>-<name>`,
for example `logstash-filter-mutate`. The name part may itself contain
dashes or underscores (`logstash-input-java_input_example`).
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable

from ..errors import ValidationError

DEFAULT_PREFIX = "logstash"

PLUGIN_TYPES: FrozenSet[str] = frozenset({'input', 'output', 'filter', 'codec'})
ALL_TYPES: FrozenSet[str] = PLUGIN_TYPES | {'integration'}

# Shape of a canonical name under any prefix; parse() matches the prefix literally.
_NAME_PATTERN = re.compile(r'\A(?P<prefix>[a-z0-9]+)-(?P<type>[a-z]+)-(?P<name>\S+)\Z')


@dataclass(frozen=True)
class ArtifactName:
    """A parsed canonical name."""
    prefix: str
    type: str
    name: str

    @classmethod
    def parse(
        cls,
        text: str,
        prefix: str = DEFAULT_PREFIX,
        allowed_types: Iterable[str] = ALL_TYPES,
    ) -> 'ArtifactName':
        """
        Parse a canonical name.

        Args:
            text: Canonical name, e.g. "logstash-codec-json"
            prefix: Required first component
            allowed_types: Types accepted in the second component

        Returns:
            ArtifactName

        Raises:
            ValidationError: if the text does not follow the grammar
        """
        match = re.match(rf'\A{re.escape(prefix)}-(?P<type>[a-z]+)-(?P<name>\S+)\Z', text or '')
        if not match:
            if _NAME_PATTERN.match(text or ''):
                raise ValidationError(f"invalid plugin name `{text}`: expected prefix `{prefix}`")
            raise ValidationError(f"invalid plugin name `{text}`")

        plugin_type = match.group('type')
        if plugin_type not in frozenset(allowed_types):
            raise ValidationError(f"unsupported plugin type `{plugin_type}` in `{text}`")

        return cls(prefix=prefix, type=plugin_type, name=match.group('name'))

    @property
    def canonical_name(self) -> str:
        return f"{self.prefix}-{self.type}-{self.name}"

    def __str__(self) -> str:
        return self.canonical_name


def is_canonical_name(text: str, prefix: str = DEFAULT_PREFIX) -> bool:
    """Check whether `text` parses as a canonical name."""
    try:
        ArtifactName.parse(text, prefix=prefix)
    except ValidationError:
        return False
    return True
