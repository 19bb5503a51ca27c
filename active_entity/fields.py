import abc
import inspect
import typing

import attr
import inflection
import sqlalchemy
from sqlalchemy.orm import ColumnProperty, RelationshipProperty


def logical_name(key: str) -> str:
    if key.startswith("_") and not key.startswith("__"):
        return key[1:]
    return key


class Visitor:
    def traverse_from(self, node: "Node") -> None:
        node.accept(self)
        for child in node.children:
            self.traverse_from(child)
        node.farewell(self)

    def visit_field(self, field: "FieldNode") -> None:
        pass

    def leave_field(self, field: "FieldNode") -> None:
        pass

    def visit_entity(self, entity: "EntityNode") -> None:
        pass

    def leave_entity(self, entity: "EntityNode") -> None:
        pass

    def visit_list_of_entities(self, list_of_entities: "ListOfEntitiesNode") -> None:
        pass

    def leave_list_of_entities(self, list_of_entities: "ListOfEntitiesNode") -> None:
        pass


class NodeMeta(type):
    def __new__(mcs, name: str, bases: tuple, namespace: dict) -> typing.Type:
        cls = super().__new__(mcs, name, bases, namespace)
        if inspect.isabstract(cls):
            return cls
        return attr.s(auto_attribs=True)(cls)


class Node(metaclass=NodeMeta):
    name: str
    attribute: str
    type: typing.Type
    children: typing.List["Node"] = attr.Factory(list)

    @property
    def protected(self) -> bool:
        return self.name != self.attribute

    @abc.abstractmethod
    def accept(self, visitor: Visitor) -> None:
        pass

    @abc.abstractmethod
    def farewell(self, visitor: Visitor) -> None:
        pass


class FieldNode(Node):
    required: bool = False
    length: typing.Optional[int] = None

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_field(self)

    def farewell(self, visitor: Visitor) -> None:
        visitor.leave_field(self)


class EntityNode(Node):
    def accept(self, visitor: Visitor) -> None:
        visitor.visit_entity(self)

    def farewell(self, visitor: Visitor) -> None:
        visitor.leave_entity(self)


class ListOfEntitiesNode(Node):
    def accept(self, visitor: Visitor) -> None:
        visitor.visit_list_of_entities(self)

    def farewell(self, visitor: Visitor) -> None:
        visitor.leave_list_of_entities(self)


@attr.s(auto_attribs=True)
class FieldTree:
    root: EntityNode

    @property
    def fields(self) -> typing.List[FieldNode]:
        return [node for node in self.root.children if isinstance(node, FieldNode)]

    def find(self, name: str) -> typing.Optional[Node]:
        for node in self.root.children:
            if node.name == name:
                return node
        return None

    def attribute_for(self, name: str) -> str:
        node = self.find(name)
        return node.attribute if node else name


def _column_node(prop: ColumnProperty) -> FieldNode:
    column = prop.columns[0]
    length = getattr(column.type, "length", None)
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        python_type = object
    required = not (
        column.nullable or column.primary_key or column.default is not None or column.server_default is not None
    )
    return FieldNode(
        logical_name(prop.key), prop.key, python_type, [], required, length
    )


def _relationship_node(prop: RelationshipProperty) -> Node:
    related_cls = prop.mapper.class_
    if prop.uselist:
        return ListOfEntitiesNode(logical_name(prop.key), prop.key, related_cls)
    return EntityNode(logical_name(prop.key), prop.key, related_cls)


def build(entity_cls: typing.Type) -> FieldTree:
    mapper = sqlalchemy.inspect(entity_cls)
    children: typing.List[Node] = []

    # Mapper.attrs configures pending mappers, so relationships are resolved here
    for prop in mapper.attrs:
        if isinstance(prop, ColumnProperty):
            children.append(_column_node(prop))
        elif isinstance(prop, RelationshipProperty):
            children.append(_relationship_node(prop))

    root_name = inflection.underscore(entity_cls.__name__)
    root = EntityNode(root_name, root_name, entity_cls, children)
    return FieldTree(root)
