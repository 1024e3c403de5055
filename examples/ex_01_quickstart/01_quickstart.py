"""Quickstart: constructor injection, transient and singleton classes.

Classes are built on demand. ``@inject`` marks the constructor whose
parameters are resolved from the container, ``@singleton`` shares one instance,
and ``register_singleton_class`` binds a protocol to a concrete singleton.
"""

from __future__ import annotations

from typing import Protocol

from tinywire import Container, inject, singleton


class Clock:
    pass


@singleton
class Settings:
    def __init__(self) -> None:
        self.greeting = "hello"


class Cache(Protocol):
    def get(self, key: str) -> str | None: ...


class MemoryCache:
    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)


class Greeter:
    @inject
    def __init__(self, settings: Settings, clock: Clock) -> None:
        self.settings = settings
        self.clock = clock

    def greet(self, name: str) -> str:
        return f"{self.settings.greeting}, {name}"


def main() -> None:
    container = Container()

    transient_new = container.resolve(Clock) is not container.resolve(Clock)
    print(f"transient_new={transient_new}")  # => transient_new=True

    singleton_same = container.resolve(Settings) is container.resolve(Settings)
    print(f"singleton_same={singleton_same}")  # => singleton_same=True

    greeter = container.resolve(Greeter)
    print(f"greeting={greeter.greet('world')}")  # => greeting=hello, world
    print(f"shared_settings={greeter.settings is container.resolve(Settings)}")  # => shared_settings=True

    container.register_singleton_class(Cache, MemoryCache)
    cache = container.resolve(Cache)
    print(f"cache_type={type(cache).__name__}")  # => cache_type=MemoryCache
    print(f"cache_same={cache is container.resolve(MemoryCache)}")  # => cache_same=True

    print(f"container_self={container.resolve(Container) is container}")  # => container_self=True


if __name__ == "__main__":
    main()
