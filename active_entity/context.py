import typing

import attr

from active_entity.errors import ConfigurationError

if typing.TYPE_CHECKING:
    from active_entity.manager import EntityManager
    from active_entity.validation import Validator


@attr.s(auto_attribs=True)
class EntityContext:
    """Collaborators shared by one entity hierarchy, set once at bootstrap."""

    entity_manager: typing.Optional["EntityManager"] = None
    validator: typing.Optional["Validator"] = None

    def get_entity_manager(self) -> "EntityManager":
        if self.entity_manager is None:
            raise ConfigurationError("Entity Manager is not set.")
        return self.entity_manager

    def get_validator(self) -> "Validator":
        if self.validator is None:
            raise ConfigurationError("Validator is not set.")
        return self.validator
