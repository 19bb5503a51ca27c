import typing

if typing.TYPE_CHECKING:
    from active_entity.validation import Violation


class ConfigurationError(RuntimeError):
    pass


class MemberAccessError(AttributeError):
    pass


class ConversionError(TypeError):
    pass


class ValidationError(ValueError):
    def __init__(self, message: str, violation: typing.Optional["Violation"] = None) -> None:
        super().__init__(message)
        self.violation = violation

    @classmethod
    def from_violation(cls, violation: "Violation") -> "ValidationError":
        root = violation.root
        if isinstance(root, type):
            class_name = root.__name__
        elif isinstance(root, str):
            class_name = root
        else:
            class_name = type(root).__name__
        return cls(f"{class_name}.{violation.property_path}: {violation.message}", violation)
