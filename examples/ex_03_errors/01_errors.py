"""Errors raised while registering and resolving.

Every failure derives from ``TinyWireError`` and is raised to the caller of
``resolve`` or of the registration method; nothing is retried.
"""

from __future__ import annotations

from tinywire import (
    AmbiguousConstructorError,
    ConstructionError,
    Container,
    DuplicateBindingError,
    InvalidQualifierError,
    MissingDependencyError,
    NoAccessibleConstructorError,
    TinyWireError,
    inject,
    singleton,
)


@singleton
class TwoConstructors:
    @inject
    def __init__(self) -> None:
        pass

    @inject
    @classmethod
    def create(cls) -> TwoConstructors:
        return cls()


class NeedsArguments:
    def __init__(self, host: str) -> None:
        self.host = host


class NeedsPort:
    @inject
    def __init__(self, port: int) -> None:
        self.port = port


class Exploding:
    def __init__(self) -> None:
        msg = "boom"
        raise ValueError(msg)


class Unmarked:
    pass


def main() -> None:
    container = Container()

    try:
        container.resolve(TwoConstructors)
    except AmbiguousConstructorError as error:
        print(f"ambiguous={list(error.candidates)}")  # => ambiguous=['__init__', 'create']

    try:
        container.resolve(NeedsArguments)
    except NoAccessibleConstructorError as error:
        print(f"no_constructor={error.key.__name__}")  # => no_constructor=NeedsArguments

    try:
        container.resolve(NeedsPort)
    except MissingDependencyError as error:
        print(f"missing={error.name}:{error.key.__name__}")  # => missing=port:int

    try:
        container.resolve(Exploding)
    except ConstructionError as error:
        print(f"cause={type(error.__cause__).__name__}")  # => cause=ValueError

    container.register_singleton(Unmarked, Unmarked())
    try:
        container.register_singleton(Unmarked, Unmarked())
    except DuplicateBindingError as error:
        print(f"duplicate={error.key.__name__}")  # => duplicate=Unmarked

    try:
        container.register_qualified_instance(Unmarked, "primary", Unmarked())
    except InvalidQualifierError as error:
        print(f"invalid_qualifier={error.marker!r}")  # => invalid_qualifier='primary'

    print(f"base_error={issubclass(MissingDependencyError, TinyWireError)}")  # => base_error=True


if __name__ == "__main__":
    main()
