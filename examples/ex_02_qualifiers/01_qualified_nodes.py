"""Qualified bindings and cycle-safe field injection.

Two implementations of ``Node`` are bound under ``Named("a")`` and
``Named("b")``. Singletons and qualified instances are stored before their
fields are wired, so the nodes can reference each other and the leaves can
reference the root. Constructor cycles cannot be broken that way and are
reported as ``CircularDependencyError``.
"""

from __future__ import annotations

from typing import Annotated, ClassVar, Protocol

from tinywire import (
    CircularDependencyError,
    Container,
    Injected,
    Named,
    inject,
    qualified,
    singleton,
)


class Node(Protocol):
    def name(self) -> str: ...


@singleton
class Root:
    a: Injected[Annotated[Node, Named("a")]]
    b: Injected[Annotated[Node, Named("b")]]

    def __str__(self) -> str:
        return f"root({self.a.name()}, {self.b.name()})"


@singleton
@qualified(Named("a"))
class NodeA:
    leaf: Injected[Leaf]
    b: Injected[Annotated[Node, Named("b")]]

    def name(self) -> str:
        if getattr(self, "b", None) is None:
            return f"nodeA({self.leaf})"
        return f"nodeAWithB({self.leaf})"


@singleton
@qualified(Named("b"))
class NodeB:
    a: Injected[Annotated[Node, Named("a")]]

    @inject
    def __init__(self, leaf: Leaf) -> None:
        self.leaf = leaf

    def name(self) -> str:
        if getattr(self, "a", None) is None:
            return f"nodeB({self.leaf})"
        return f"nodeBWithA({self.leaf})"


class Leaf:
    root: Injected[Root]

    sequence: ClassVar[int] = 0

    def __init__(self) -> None:
        self.index = Leaf.sequence
        Leaf.sequence += 1

    def __str__(self) -> str:
        if getattr(self, "root", None) is None:
            return f"leaf{self.index}"
        return f"leafwithroot{self.index}"


@singleton
class Ia:
    @inject
    def __init__(self, b: Ib) -> None:
        self.b = b


@singleton
class Ib:
    @inject
    def __init__(self, a: Ia) -> None:
        self.a = a


def main() -> None:
    container = Container()
    container.register_qualified_class(Node, NodeA)
    container.register_qualified_class(Node, NodeB)

    root = container.resolve(Root)
    print(root)  # => root(nodeAWithB(leafwithroot0), nodeBWithA(leafwithroot1))
    print(f"root_same={container.resolve(Root) is root}")  # => root_same=True
    print(f"cycle_closed={root.a.b is root.b and root.b.a is root.a}")  # => cycle_closed=True

    cached = container.registry.qualified_instances_for(Node)
    print(sorted(type(node).__name__ for node in cached.values()))  # => ['NodeA', 'NodeB']

    try:
        container.resolve(Ia)
    except CircularDependencyError as error:
        chain = " -> ".join(cls.__name__ for cls in (*error.stack, error.key))
        print(f"constructor_cycle={chain}")  # => constructor_cycle=Ia -> Ib -> Ia


if __name__ == "__main__":
    main()
