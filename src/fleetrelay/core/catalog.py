"""
Notification catalog

Read-only mapping from template name to notification definition, loaded once
at startup from the deployment's configuration.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import yaml
import structlog
from pydantic import ValidationError as PydanticValidationError

from .schemas import NotificationDefinition
from ..exceptions.base import ConfigurationError

logger = structlog.get_logger(__name__)


class NotificationCatalog:
    """Lookup of notification definitions by template name"""

    def __init__(self, definitions: Iterable[NotificationDefinition] = ()):
        self._definitions: Dict[str, NotificationDefinition] = {}
        for definition in definitions:
            if definition.name in self._definitions:
                raise ConfigurationError(
                    f"Duplicate notification definition: {definition.name}",
                    "notifications"
                )
            self._definitions[definition.name] = definition

    @classmethod
    def from_dict(cls, data: Union[Dict[str, Any], List[Dict[str, Any]]]) -> "NotificationCatalog":
        """
        Build a catalog from parsed configuration.

        Accepts either a list of definitions or a mapping with a
        ``notifications`` key holding that list.
        """
        if isinstance(data, dict):
            entries = data.get("notifications") or []
        else:
            entries = data or []

        if not isinstance(entries, list):
            raise ConfigurationError("notifications must be a list", "notifications")

        definitions = []
        for index, entry in enumerate(entries):
            try:
                definitions.append(NotificationDefinition.model_validate(entry))
            except PydanticValidationError as e:
                raise ConfigurationError(
                    f"Invalid notification definition at index {index}: {e}",
                    "notifications"
                )

        return cls(definitions)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "NotificationCatalog":
        """Load a catalog from a YAML file"""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Can't read notification catalog '{path}': {e}", "notifications_path")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in notification catalog '{path}': {e}", "notifications_path")

        catalog = cls.from_dict(data or {})
        logger.info("Notification catalog loaded", path=str(path), notifications=len(catalog))
        return catalog

    def lookup(self, name: str) -> Optional[NotificationDefinition]:
        """Return the definition for a template name, or None if it was never registered"""
        return self._definitions.get(name)

    def names(self) -> List[str]:
        return sorted(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[NotificationDefinition]:
        return iter(self._definitions[name] for name in self.names())
