import logging
import re
import typing

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from active_entity.fields import FieldTree, build


logger = logging.getLogger(__name__)

EntityType = typing.TypeVar("EntityType")
IdentityType = typing.TypeVar("IdentityType")

Criteria = typing.Mapping[str, typing.Any]
OrderBy = typing.Mapping[str, str]

_DYNAMIC_FINDER = re.compile(r"^(?P<method>find_one_by|find_by|count_by)_(?P<field>\w+)$")
_FINDER_METHODS = {"find_by": "find_by", "find_one_by": "find_one_by", "count_by": "count"}


class Repository(typing.Generic[EntityType, IdentityType]):
    """Finders over one entity type, bound to a session.

    Criteria and ordering keys are logical field names, so a field mapped as
    ``_email`` is queried with ``{"email": ...}``. Subclass it and point an
    entity's ``__repository__`` at the subclass to add custom finders.
    """

    def __init__(self, session: Session, entity: typing.Type[EntityType]) -> None:
        self.session = session
        self.entity = entity

    @classmethod
    def supports(cls, name: str) -> bool:
        if name.startswith("_"):
            return False
        if _DYNAMIC_FINDER.match(name):
            return True
        return callable(getattr(cls, name, None))

    @property
    def tree(self) -> FieldTree:
        registry = getattr(self.entity, "__field_registry__", None)
        if registry is None:
            return build(self.entity)
        return registry.tree_for(self.entity)

    def query(self) -> Select:
        return select(self.entity)

    def find(self, identity: IdentityType) -> typing.Optional[EntityType]:
        return self.session.get(self.entity, identity)

    def find_all(self) -> typing.List[EntityType]:
        return list(self.session.execute(self.query()).scalars())

    def find_by(
        self,
        criteria: Criteria,
        order_by: typing.Optional[OrderBy] = None,
        limit: typing.Optional[int] = None,
        offset: typing.Optional[int] = None,
    ) -> typing.List[EntityType]:
        statement = self._filtered(criteria)
        for name, direction in (order_by or {}).items():
            column = getattr(self.entity, self.tree.attribute_for(name))
            statement = statement.order_by(column.desc() if direction.upper() == "DESC" else column.asc())
        if limit is not None:
            statement = statement.limit(limit)
        if offset is not None:
            statement = statement.offset(offset)
        return list(self.session.execute(statement).scalars())

    def find_one_by(self, criteria: Criteria) -> typing.Optional[EntityType]:
        return self.session.execute(self._filtered(criteria).limit(1)).scalars().first()

    def count(self, criteria: typing.Optional[Criteria] = None) -> int:
        statement = select(func.count()).select_from(self._filtered(criteria or {}).subquery())
        return self.session.execute(statement).scalar_one()

    def exists(self, criteria: Criteria) -> bool:
        return bool(self.session.execute(select(self._filtered(criteria).exists())).scalar())

    def clear(self) -> None:
        for instance in list(self.session.identity_map.values()):
            if isinstance(instance, self.entity):
                self.session.expunge(instance)

    def _filtered(self, criteria: Criteria) -> Select:
        tree = self.tree
        return self.query().filter_by(**{tree.attribute_for(name): value for name, value in criteria.items()})

    def __getattr__(self, name: str) -> typing.Callable[..., typing.Any]:
        match = _DYNAMIC_FINDER.match(name)
        if name.startswith("_") or not match:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

        field = match.group("field")
        if self.tree.find(field) is None:
            raise AttributeError(f"{self.entity.__name__} has no field {field!r} to build {name!r} from")

        logger.debug("Resolved dynamic finder %s.%s", self.entity.__name__, name)
        method = getattr(self, _FINDER_METHODS[match.group("method")])

        def finder(value: typing.Any, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
            return method({field: value}, *args, **kwargs)

        return finder
