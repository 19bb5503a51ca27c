import logging
import typing

import sqlalchemy
from sqlalchemy.orm.state import InstanceState

from active_entity.fields import EntityNode, FieldNode, ListOfEntitiesNode, Node, Visitor
from active_entity.registry import Registry


logger = logging.getLogger(__name__)


def is_entity(value: typing.Any) -> bool:
    return isinstance(sqlalchemy.inspect(value, raiseerr=False), InstanceState)


class ArrayExportingVisitor(Visitor):
    def __init__(self, entity: typing.Any, registry: Registry, path: typing.Tuple[typing.Any, ...] = ()) -> None:
        self._entity = entity
        self._registry = registry
        self._path = path + (entity,)
        self._result: typing.Dict[str, typing.Any] = {}

    def export(self) -> typing.Dict[str, typing.Any]:
        tree = self._registry.tree_for(type(self._entity))
        for node in tree.root.children:
            self.traverse_from(node)
        return self._result

    def _read(self, node: Node) -> typing.Any:
        accessor = self._registry.accessor_for(type(self._entity), node.name)
        if accessor is None or not accessor.readable:
            return None
        return accessor.getter(self._entity)

    def visit_field(self, field: FieldNode) -> None:
        value = self._read(field)
        if value is not None:
            self._result[field.name] = value

    def visit_entity(self, entity: EntityNode) -> None:
        value = self._read(entity)
        if not is_entity(value) or any(value is seen for seen in self._path):
            return
        nested = ArrayExportingVisitor(value, self._registry, self._path).export()
        if nested:
            self._result[entity.name] = nested

    def visit_list_of_entities(self, list_of_entities: ListOfEntitiesNode) -> None:
        # TODO: export collections once related entities can be emitted without loading whole collections
        logger.debug("Skipping collection %s.%s", type(self._entity).__name__, list_of_entities.name)


def to_array(entity: typing.Any, registry: Registry) -> typing.Dict[str, typing.Any]:
    return ArrayExportingVisitor(entity, registry).export()
