"""Constraint validation for entities.

``ConstraintValidator`` collects violations from two sources: the column
metadata of the mapped type (``nullable=False`` without a default, the length
of ``String`` columns) and attrs validators declared per logical field in the
entity's ``__validators__`` mapping::

    class Author(Base):
        _email = Column("email", String(255))

        __validators__ = {"email": [attr.validators.matches_re(r"[^@]+@[^@]+")]}

Anything with a ``validate(entity)`` method returning a list of
``Violation`` can be used instead.
"""
import logging
import typing

import attr

from active_entity.fields import FieldTree, build


logger = logging.getLogger(__name__)

NOT_NULL_MESSAGE = "This value should not be null."
TOO_LONG_MESSAGE = "This value is too long. It should have {limit} characters or less."

AttrsValidator = typing.Callable[[typing.Any, typing.Any, typing.Any], typing.Any]


@attr.s(auto_attribs=True, frozen=True)
class Violation:
    root: typing.Any
    property_path: str
    message: str

    def __str__(self) -> str:
        return f"{self.property_path}: {self.message}"


class Validator(typing.Protocol):
    def validate(self, entity: typing.Any) -> typing.List[Violation]:
        ...


@attr.s(auto_attribs=True, frozen=True)
class ConstrainedProperty:
    """Stands in for ``attr.Attribute``; attrs validators only read its name."""

    name: str


def declared_validators(entity_cls: typing.Type) -> typing.Dict[str, typing.List[AttrsValidator]]:
    validators: typing.Dict[str, typing.List[AttrsValidator]] = {}
    for klass in reversed(entity_cls.__mro__):
        for name, field_validators in klass.__dict__.get("__validators__", {}).items():
            validators.setdefault(name, []).extend(field_validators)
    return validators


class ConstraintValidator:
    def validate(self, entity: typing.Any) -> typing.List[Violation]:
        violations = self._column_violations(entity) + self._declared_violations(entity)
        if violations:
            logger.debug("%r has %d violation(s)", entity, len(violations))
        return violations

    def _tree(self, entity: typing.Any) -> FieldTree:
        registry = getattr(type(entity), "__field_registry__", None)
        if registry is None:
            return build(type(entity))
        return registry.tree_for(type(entity))

    def _column_violations(self, entity: typing.Any) -> typing.List[Violation]:
        violations = []
        for field in self._tree(entity).fields:
            value = getattr(entity, field.attribute)
            if value is None:
                if field.required:
                    violations.append(Violation(entity, field.name, NOT_NULL_MESSAGE))
            elif field.length is not None and isinstance(value, str) and len(value) > field.length:
                violations.append(Violation(entity, field.name, TOO_LONG_MESSAGE.format(limit=field.length)))
        return violations

    def _declared_violations(self, entity: typing.Any) -> typing.List[Violation]:
        tree = self._tree(entity)
        violations = []
        for name, validators in declared_validators(type(entity)).items():
            value = getattr(entity, tree.attribute_for(name))
            for validator in validators:
                try:
                    validator(entity, ConstrainedProperty(name), value)
                except (TypeError, ValueError) as e:
                    violations.append(Violation(entity, name, str(e.args[0]) if e.args else str(e)))
        return violations
