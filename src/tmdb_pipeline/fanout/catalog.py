"""
Endpoint catalog for the Detail Fan-out service.

Maps entity type to detail facets and their URL templates:

    {
        "movie": {
            "details": "https://api.themoviedb.org/3/movie/{id}",
            "credits": "https://api.themoviedb.org/3/movie/{id}/credits"
        },
        "person": {...}
    }

Loaded once at startup from the base64 JSON in API_ENDPOINT_LIST and
shared read-only by every request.
"""

import base64
import binascii
import json
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from core.errors.exceptions import ConfigurationError

ID_PLACEHOLDER = "{id}"


@dataclass(frozen=True)
class DetailEndpoint:
    """One facet of an entity type and the template used to fetch it."""

    response_type: str
    url_template: str

    def url_for(self, entity_id: int) -> str:
        return self.url_template.replace(ID_PLACEHOLDER, str(entity_id))


class EndpointCatalog:
    """Immutable entity type -> response_type -> URL template mapping."""

    def __init__(self, entries: Mapping[str, Mapping[str, str]]):
        self._entries = MappingProxyType(
            {
                entity_type: tuple(
                    DetailEndpoint(response_type=response_type, url_template=template)
                    for response_type, template in endpoints.items()
                )
                for entity_type, endpoints in entries.items()
            }
        )

    @classmethod
    def from_mapping(cls, data: Any) -> "EndpointCatalog":
        """
        Validate a decoded catalog document.

        Raises:
            ConfigurationError: Not a mapping of mappings of strings
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Endpoint catalog must be a JSON object, got {type(data).__name__}"
            )

        entries: dict[str, dict[str, str]] = {}
        for entity_type, endpoints in data.items():
            if not isinstance(endpoints, Mapping):
                raise ConfigurationError(
                    f"Endpoints for type '{entity_type}' must be a JSON object"
                )
            for response_type, template in endpoints.items():
                if not isinstance(template, str) or not template:
                    raise ConfigurationError(
                        f"URL template for '{entity_type}.{response_type}' must be a non-empty string"
                    )
            entries[str(entity_type)] = {str(k): v for k, v in endpoints.items()}
        return cls(entries)

    @classmethod
    def from_json(cls, text: str | bytes) -> "EndpointCatalog":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError("Failed to parse API_ENDPOINT_LIST JSON", cause=e) from e
        return cls.from_mapping(data)

    @classmethod
    def from_base64(cls, value: str) -> "EndpointCatalog":
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(
                "Failed to decode API_ENDPOINT_LIST base64 string", cause=e
            ) from e
        return cls.from_json(raw)

    def endpoints_for(self, entity_type: str) -> tuple[DetailEndpoint, ...] | None:
        """Endpoints configured for a type, or None when the type is unknown."""
        return self._entries.get(entity_type)

    @property
    def entity_types(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)
