from active_entity.context import EntityContext
from active_entity.entity import ActiveEntity, ActiveEntityMeta, declarative_active_base
from active_entity.errors import ConfigurationError, ConversionError, MemberAccessError, ValidationError
from active_entity.manager import EntityManager, EntityState
from active_entity.repository import Repository
from active_entity.validation import ConstraintValidator, Validator, Violation


__all__ = [
    "ActiveEntity",
    "ActiveEntityMeta",
    "ConfigurationError",
    "ConstraintValidator",
    "ConversionError",
    "EntityContext",
    "EntityManager",
    "EntityState",
    "MemberAccessError",
    "Repository",
    "ValidationError",
    "Validator",
    "Violation",
    "declarative_active_base",
]
