import logging
import typing
from collections import abc

import inflection
from sqlalchemy import MetaData, event
from sqlalchemy.orm import DeclarativeMeta, Mapper, Session, declarative_base, declared_attr, has_inherited_table

from active_entity.context import EntityContext
from active_entity.conversion import to_array
from active_entity.errors import ConversionError, MemberAccessError, ValidationError
from active_entity.manager import EntityManager, EntityState
from active_entity.registry import Accessor, Registry
from active_entity.repository import Repository
from active_entity.validation import Validator, Violation


logger = logging.getLogger(__name__)

T = typing.TypeVar("T", bound="ActiveEntity")

GETTER_HINT = " If you want to use dynamic getter for this property, make sure that it is mapped as protected '_{name}'."
SETTER_HINT = " If you want to use dynamic setter for this property, make sure that it is mapped as protected '_{name}'."


def _has_class_attribute(cls: typing.Type, name: str) -> bool:
    return any(name in klass.__dict__ for klass in cls.__mro__)


class ActiveEntityMeta(DeclarativeMeta):
    def __getattr__(cls, name: str) -> typing.Any:
        if name.startswith("_") or not cls.__repository__.supports(name):
            raise AttributeError(f"type object {cls.__name__!r} has no attribute {name!r}")
        return getattr(cls.get_repository(), name)


class ActiveEntity:
    """Active Record layer for SQLAlchemy mapped classes.

    Attributes resolve in a fixed order: a property, then a public mapped
    field, then ``get_<name>`` / ``set_<name>`` accessor methods, then a
    protected field with the same logical name (``_name`` mapped columns are
    exposed as ``name``).
    Everything else raises ``MemberAccessError``. Item access
    (``entity["name"]``) follows the same order.

    Class attributes the type does not define are looked up on its
    repository, so ``Author.find(1)`` and ``Author.find_one_by_email(...)``
    forward to ``Author.__repository__``.
    """

    __repository__: typing.Type[Repository] = Repository
    __entity_context__: EntityContext = EntityContext()
    __field_registry__: Registry = Registry()
    __validators__: typing.Dict[str, typing.List[typing.Callable]] = {}

    @declared_attr
    def __tablename__(cls) -> typing.Optional[str]:
        if has_inherited_table(cls):
            return None
        return inflection.pluralize(inflection.underscore(cls.__name__))

    def __init__(self, **values: typing.Any) -> None:
        for key, value in values.items():
            self[key] = value

    @classmethod
    def create(cls: typing.Type[T], values: typing.Optional[typing.Mapping[str, typing.Any]] = None) -> T:
        return cls.from_array(values or {})

    def save(self) -> None:
        self.get_entity_manager().persist(self)

    def detach(self) -> None:
        self.get_entity_manager().detach(self)

    def destroy(self) -> None:
        self.get_entity_manager().remove(self)

    # configuration

    @classmethod
    def bind_context(cls, context: EntityContext) -> None:
        cls.__entity_context__ = context

    @classmethod
    def get_entity_manager(cls) -> EntityManager:
        return cls.__entity_context__.get_entity_manager()

    @classmethod
    def set_entity_manager(cls, entity_manager: EntityManager) -> None:
        cls.__entity_context__.entity_manager = entity_manager

    @classmethod
    def set_session(cls, session: Session) -> None:
        cls.set_entity_manager(EntityManager(session))

    @classmethod
    def get_validator(cls) -> Validator:
        return cls.__entity_context__.get_validator()

    @classmethod
    def set_validator(cls, validator: Validator) -> None:
        cls.__entity_context__.validator = validator

    @classmethod
    def get_repository(cls) -> Repository:
        return cls.get_entity_manager().get_repository(cls)

    @classmethod
    def get_class_metadata(cls) -> Mapper:
        return cls.get_entity_manager().get_class_metadata(cls)

    # validation

    def is_valid(self) -> bool:
        return len(self.get_errors()) == 0

    def get_errors(self) -> typing.List[Violation]:
        return list(self.get_validator().validate(self))

    def validate(self) -> bool:
        # only the first violation is reported, get_errors() returns all of them
        for violation in self.get_errors():
            raise ValidationError.from_violation(violation)
        return True

    # unit of work

    def get_entity_state(self) -> EntityState:
        return self.get_entity_manager().get_entity_state(self)

    def get_entity_identifier(self) -> typing.List[typing.Any]:
        return self.get_entity_manager().get_entity_identifier(self)

    # conversion

    @classmethod
    def from_array(cls: typing.Type[T], array: typing.Mapping[str, typing.Any], instance: typing.Optional[T] = None) -> T:
        if instance is None:
            instance = cls()

        for key, value in array.items():
            if isinstance(value, abc.Mapping):
                nested = instance[key]
                if not isinstance(nested, ActiveEntity):
                    raise ConversionError(
                        f"Cannot populate {type(instance).__name__}.{key} from a mapping, it holds {nested!r}"
                        " instead of an entity."
                    )
                type(nested).from_array(value, nested)
            else:
                instance[key] = value
        return instance

    def to_array(self) -> typing.Dict[str, typing.Any]:
        return to_array(self, self.__field_registry__)

    # attribute access

    @classmethod
    def _accessor(cls, name: str) -> typing.Optional[Accessor]:
        return cls.__field_registry__.accessor_for(cls, name)

    def __getattr__(self, name: str) -> typing.Any:
        # only reached when regular lookup fails
        if name.startswith("_"):
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        return self[name]

    def __setattr__(self, name: str, value: typing.Any) -> None:
        if name.startswith("_") or _has_class_attribute(type(self), name):
            super().__setattr__(name, value)
            return
        self[name] = value

    def __getitem__(self, name: str) -> typing.Any:
        accessor = self._accessor(name)
        if accessor is None:
            raise MemberAccessError(
                f"Cannot read an undeclared property {type(self).__name__}.{name}." + GETTER_HINT.format(name=name)
            )
        if not accessor.readable:
            raise MemberAccessError(f"Cannot read a write-only property {type(self).__name__}.{name}.")
        return accessor.getter(self)

    def __setitem__(self, name: str, value: typing.Any) -> None:
        accessor = self._accessor(name)
        if accessor is None:
            raise MemberAccessError(
                f"Cannot write to an undeclared property {type(self).__name__}.{name}." + SETTER_HINT.format(name=name)
            )
        if not accessor.writable:
            raise MemberAccessError(f"Cannot write to a read-only property {type(self).__name__}.{name}.")
        accessor.setter(self, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._accessor(name) is not None

    def __delitem__(self, name: str) -> None:
        self[name] = None


def _validate_before_flush(mapper: Mapper, connection: typing.Any, target: ActiveEntity) -> None:
    logger.debug("Validating %r before flush", target)
    target.validate()


def declarative_active_base(
    metadata: typing.Optional[MetaData] = None, name: str = "ActiveBase", validate_on_flush: bool = False
) -> typing.Type[ActiveEntity]:
    base = declarative_base(
        metadata=metadata, cls=ActiveEntity, name=name, metaclass=ActiveEntityMeta, constructor=None
    )
    base.__entity_context__ = EntityContext()
    base.__field_registry__ = Registry()

    if validate_on_flush:
        event.listen(base, "before_insert", _validate_before_flush, propagate=True)
        event.listen(base, "before_update", _validate_before_flush, propagate=True)
    return base
