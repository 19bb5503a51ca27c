import inspect
import operator
import typing

import attr

from active_entity.fields import FieldTree, build


Getter = typing.Callable[[typing.Any], typing.Any]
Setter = typing.Callable[[typing.Any, typing.Any], None]


@attr.s(auto_attribs=True, frozen=True)
class Accessor:
    name: str
    getter: typing.Optional[Getter] = None
    setter: typing.Optional[Setter] = None

    @property
    def readable(self) -> bool:
        return self.getter is not None

    @property
    def writable(self) -> bool:
        return self.setter is not None


def _attribute_setter(attribute: str) -> Setter:
    def set_attribute(instance: typing.Any, value: typing.Any) -> None:
        setattr(instance, attribute, value)

    return set_attribute


def _method_setter(method_name: str) -> Setter:
    def call_setter(instance: typing.Any, value: typing.Any) -> None:
        getattr(instance, method_name)(value)

    return call_setter


def _static_lookup(cls: typing.Type, name: str) -> typing.Any:
    # getattr_static skips the metaclass __getattr__ that forwards to repositories
    return inspect.getattr_static(cls, name, None)


@attr.s(auto_attribs=True)
class Registry:
    entities_to_trees: typing.Dict[typing.Type, FieldTree] = attr.Factory(dict)
    accessors: typing.Dict[typing.Tuple[typing.Type, str], typing.Optional[Accessor]] = attr.Factory(dict)

    def tree_for(self, entity_cls: typing.Type) -> FieldTree:
        if entity_cls not in self.entities_to_trees:
            self.entities_to_trees[entity_cls] = build(entity_cls)
        return self.entities_to_trees[entity_cls]

    def accessor_for(self, entity_cls: typing.Type, name: str) -> typing.Optional[Accessor]:
        key = (entity_cls, name)
        if key not in self.accessors:
            self.accessors[key] = self._resolve(entity_cls, name)
        return self.accessors[key]

    def _resolve(self, entity_cls: typing.Type, name: str) -> typing.Optional[Accessor]:
        if name.startswith("_"):
            return None

        declared = _static_lookup(entity_cls, name)
        if isinstance(declared, property):
            return Accessor(
                name,
                operator.attrgetter(name) if declared.fget else None,
                _attribute_setter(name) if declared.fset else None,
            )

        node = self.tree_for(entity_cls).find(name)
        if node is not None and not node.protected:
            # public columns are read and written directly, as attribute syntax does
            return Accessor(name, operator.attrgetter(name), _attribute_setter(name))

        getter: typing.Optional[Getter] = None
        for prefix in ("get_", "is_"):
            if callable(_static_lookup(entity_cls, f"{prefix}{name}")):
                getter = operator.methodcaller(f"{prefix}{name}")
                break
        setter = _method_setter(f"set_{name}") if callable(_static_lookup(entity_cls, f"set_{name}")) else None

        # a protected field covers whichever direction has no accessor method
        if node is not None:
            getter = getter or operator.attrgetter(node.attribute)
            setter = setter or _attribute_setter(node.attribute)

        if getter is None and setter is None:
            return None
        return Accessor(name, getter, setter)
