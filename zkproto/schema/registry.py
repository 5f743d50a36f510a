"""Compiled type registry.

A registry is an immutable snapshot built from one protoc run. It pairs a
namespace tree (used for listing types) with a descriptor pool (used for
lookups and message classes). The list of message type names is derived
from the tree when the snapshot is constructed, so the two never diverge.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.descriptor import Descriptor
from google.protobuf.message import Message


class TypeNotFoundError(LookupError):
    """Raised when a type name is not present in the registry."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Message type not found: {type_name}")
        self.type_name = type_name


class NodeVisitor:
    """Depth-first visitor over the namespace tree.

    The default implementation descends into namespaces and message types and
    does nothing for enums. Subclasses override the hooks they care about.
    """

    def visit_namespace(self, node: "NamespaceNode") -> None:
        for child in node.children:
            child.accept(self)

    def visit_message(self, node: "MessageTypeNode") -> None:
        for child in node.children:
            child.accept(self)

    def visit_enum(self, node: "EnumNode") -> None:
        pass


@dataclass(frozen=True)
class EnumNode:
    """An enum definition."""

    name: str
    full_name: str
    values: tuple[str, ...] = ()

    def accept(self, visitor: NodeVisitor) -> None:
        visitor.visit_enum(self)


@dataclass(frozen=True)
class MessageTypeNode:
    """A message type with its nested message and enum definitions."""

    name: str
    full_name: str
    fields: tuple[str, ...] = ()
    map_entry: bool = False
    children: tuple["SchemaNode", ...] = ()

    def accept(self, visitor: NodeVisitor) -> None:
        visitor.visit_message(self)


@dataclass(frozen=True)
class NamespaceNode:
    """A package level. The root namespace has an empty name."""

    name: str
    full_name: str
    children: tuple["SchemaNode", ...] = ()

    def accept(self, visitor: NodeVisitor) -> None:
        visitor.visit_namespace(self)


SchemaNode = NamespaceNode | MessageTypeNode | EnumNode


class MessageTypeCollector(NodeVisitor):
    """Collect fully qualified message type names in traversal order."""

    def __init__(self) -> None:
        self.names: list[str] = []

    def visit_message(self, node: MessageTypeNode) -> None:
        # map<K, V> fields compile to synthetic entry types
        if not node.map_entry:
            self.names.append(node.full_name)
        super().visit_message(node)


def message_type_names(root: NamespaceNode) -> list[str]:
    """Return every message type name reachable from root, depth first."""
    collector = MessageTypeCollector()
    root.accept(collector)
    return collector.names


def _qualify(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


def _enum_node(proto: descriptor_pb2.EnumDescriptorProto, prefix: str) -> EnumNode:
    return EnumNode(
        name=proto.name,
        full_name=_qualify(prefix, proto.name),
        values=tuple(value.name for value in proto.value),
    )


def _message_node(proto: descriptor_pb2.DescriptorProto, prefix: str) -> MessageTypeNode:
    full_name = _qualify(prefix, proto.name)
    nested: list[SchemaNode] = [_message_node(child, full_name) for child in proto.nested_type]
    nested.extend(_enum_node(child, full_name) for child in proto.enum_type)
    return MessageTypeNode(
        name=proto.name,
        full_name=full_name,
        fields=tuple(f.name for f in proto.field),
        map_entry=proto.options.map_entry,
        children=tuple(nested),
    )


class _NamespaceBuilder:
    """Mutable namespace used while merging packages from several files."""

    def __init__(self, name: str, full_name: str) -> None:
        self.name = name
        self.full_name = full_name
        self.children: dict[str, "_NamespaceBuilder | SchemaNode"] = {}

    def namespace(self, name: str) -> "_NamespaceBuilder":
        child = self.children.get(name)
        if child is None:
            child = _NamespaceBuilder(name, _qualify(self.full_name, name))
            self.children[name] = child
        if not isinstance(child, _NamespaceBuilder):
            raise ValueError(f"{child.full_name} is both a package and a type")
        return child

    def add(self, node: SchemaNode) -> None:
        self.children[node.name] = node

    def freeze(self) -> NamespaceNode:
        return NamespaceNode(
            name=self.name,
            full_name=self.full_name,
            children=tuple(
                child.freeze() if isinstance(child, _NamespaceBuilder) else child
                for child in self.children.values()
            ),
        )


def build_namespace_tree(files: Iterable[descriptor_pb2.FileDescriptorProto]) -> NamespaceNode:
    """Merge the packages of several files into one namespace tree."""
    root = _NamespaceBuilder("", "")
    for file_proto in files:
        namespace = root
        for part in filter(None, file_proto.package.split(".")):
            namespace = namespace.namespace(part)
        for message in file_proto.message_type:
            namespace.add(_message_node(message, file_proto.package))
        for enum in file_proto.enum_type:
            namespace.add(_enum_node(enum, file_proto.package))
    return root.freeze()


@dataclass(frozen=True)
class TypeRegistry:
    """An immutable, fully built registry snapshot."""

    root: NamespaceNode
    files: tuple[str, ...] = ()
    pool: descriptor_pool.DescriptorPool | None = None
    message_types: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "message_types", tuple(message_type_names(self.root)))

    @classmethod
    def empty(cls) -> "TypeRegistry":
        return cls(root=NamespaceNode(name="", full_name=""))

    @classmethod
    def from_file_set(
        cls, file_set: descriptor_pb2.FileDescriptorSet, files: Iterable[str]
    ) -> "TypeRegistry":
        """Build a registry from a protoc descriptor set.

        Args:
            file_set: Descriptor set in dependency order (protoc --include_imports).
            files: Names of the schema files the set was compiled from.

        Returns:
            The new registry.
        """
        pool = descriptor_pool.DescriptorPool()
        for file_proto in file_set.file:
            pool.AddSerializedFile(file_proto.SerializeToString())
        return cls(
            root=build_namespace_tree(file_set.file),
            files=tuple(files),
            pool=pool,
        )

    @property
    def is_empty(self) -> bool:
        return not self.message_types

    def walk(self, visitor: NodeVisitor) -> None:
        self.root.accept(visitor)

    def lookup(self, type_name: str) -> Descriptor:
        """Return the descriptor for a fully qualified message type name."""
        name = type_name.lstrip(".")
        if self.pool is None or not name:
            raise TypeNotFoundError(type_name)
        try:
            return self.pool.FindMessageTypeByName(name)
        except KeyError:
            raise TypeNotFoundError(type_name) from None

    def message_class(self, type_name: str) -> type[Message]:
        return message_factory.GetMessageClass(self.lookup(type_name))


class RegistryStore:
    """Holds the published registry snapshot.

    Publishing replaces the reference in one assignment. Readers fetch
    `current` once per operation and keep using that snapshot.
    """

    def __init__(self, registry: TypeRegistry | None = None) -> None:
        self._registry = registry if registry is not None else TypeRegistry.empty()

    @property
    def current(self) -> TypeRegistry:
        return self._registry

    def publish(self, registry: TypeRegistry) -> TypeRegistry:
        """Publish a new snapshot and return the one it replaced."""
        previous = self._registry
        self._registry = registry
        return previous
