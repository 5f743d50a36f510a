"""Schema loading and the compiled type registry."""

from .imports import ImportStatement as ImportStatement
from .imports import scan_imports as scan_imports
from .loader import ImportResolver as ImportResolver
from .loader import SchemaError as SchemaError
from .loader import SchemaLoader as SchemaLoader
from .loader import SchemaSource as SchemaSource
from .registry import EnumNode as EnumNode
from .registry import MessageTypeNode as MessageTypeNode
from .registry import NamespaceNode as NamespaceNode
from .registry import NodeVisitor as NodeVisitor
from .registry import RegistryStore as RegistryStore
from .registry import TypeNotFoundError as TypeNotFoundError
from .registry import TypeRegistry as TypeRegistry
