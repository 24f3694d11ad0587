"""
Read-only metadata database

Type definitions live in an arena owned by MetadataDatabase and are addressed
by TypeEntry handles. Handles are cheap, hashable and only valid for the
database that produced them.
"""

from dataclasses import dataclass, field
from enum import Enum


class ElementType(Enum):
    """Primitive element types that appear in signatures and constants"""
    VOID = "Void"
    BOOLEAN = "Boolean"
    CHAR = "Char"
    I1 = "I1"
    U1 = "U1"
    I2 = "I2"
    U2 = "U2"
    I4 = "I4"
    U4 = "U4"
    I8 = "I8"
    U8 = "U8"
    R4 = "R4"
    R8 = "R8"
    STRING = "String"
    I = "I"
    U = "U"
    OBJECT = "Object"

    @classmethod
    def from_name(cls, name: str):
        """Look up an element type by member name or value, None if unknown"""
        if name in cls.__members__:
            return cls.__members__[name]
        for member in cls:
            if member.value == name:
                return member
        return None


class TypeKind(Enum):
    ENUM = "enum"
    STRUCT = "struct"
    DELEGATE = "delegate"
    INTERFACE = "interface"
    CLASS = "class"


@dataclass(frozen=True)
class TypeRef:
    """Reference to a declared type; nested types use 'Outer/Inner' paths"""
    namespace: str
    name: str

    @property
    def is_nested(self) -> bool:
        return "/" in self.name

    @property
    def simple_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class TypeSig:
    """Field, parameter or return signature"""
    element: ElementType | None = None
    type_ref: TypeRef | None = None
    ptr_count: int = 0
    array_sizes: tuple[int, ...] = ()

    @property
    def is_array(self) -> bool:
        return bool(self.array_sizes)

    @property
    def array_rank(self) -> int:
        return len(self.array_sizes)


@dataclass(frozen=True)
class Constant:
    type: ElementType
    value: object


@dataclass(frozen=True)
class CustomAttribute:
    """Custom attribute with its decoded fixed arguments (str, int or TypeSig)"""
    namespace: str
    name: str
    args: tuple = ()

    @property
    def full_name(self) -> str:
        return f"{self.namespace}.{self.name}"


@dataclass
class FieldDef:
    name: str
    signature: TypeSig
    constant: Constant | None = None
    attributes: list[CustomAttribute] = field(default_factory=list)

    @property
    def is_literal(self) -> bool:
        return self.constant is not None


@dataclass
class ParamDef:
    name: str
    signature: TypeSig
    is_in: bool = True
    is_out: bool = False
    attributes: list[CustomAttribute] = field(default_factory=list)


@dataclass
class MethodDef:
    name: str
    params: list[ParamDef] = field(default_factory=list)
    return_type: TypeSig | None = None
    is_public: bool = True
    is_static: bool = False
    attributes: list[CustomAttribute] = field(default_factory=list)


@dataclass
class TypeDefinition:
    """Arena record behind a TypeEntry"""
    namespace: str
    name: str
    kind: TypeKind
    fields: list[FieldDef] = field(default_factory=list)
    methods: list[MethodDef] = field(default_factory=list)
    attributes: list[CustomAttribute] = field(default_factory=list)
    base: TypeRef | None = None
    is_union: bool = False
    explicit_layout: bool = False
    enclosing: int | None = None
    nested: list[int] = field(default_factory=list)


class MetadataDatabase:
    """Arena of type definitions with read-only queries"""

    def __init__(self):
        self._definitions: list[TypeDefinition] = []
        self._index: dict[tuple[str, str], int] = {}

    def add_type(self, namespace: str, name: str, kind: TypeKind, *, enclosing=None,
                 fields=None, methods=None, attributes=None, base: TypeRef | None = None,
                 is_union: bool = False, explicit_layout: bool = False) -> "TypeEntry":
        """Add a type definition and return its handle"""
        path = name
        enclosing_index = None
        if enclosing is not None:
            enclosing_index = enclosing.index
            path = f"{enclosing.path}/{name}"
            namespace = enclosing.namespace

        key = (namespace, path)
        if key in self._index:
            raise ValueError(f"Duplicate type definition: {namespace}.{path}")

        definition = TypeDefinition(
            namespace=namespace,
            name=name,
            kind=kind,
            fields=list(fields or []),
            methods=list(methods or []),
            attributes=list(attributes or []),
            base=base,
            is_union=is_union,
            explicit_layout=explicit_layout,
            enclosing=enclosing_index,
        )
        index = len(self._definitions)
        self._definitions.append(definition)
        self._index[key] = index
        if enclosing_index is not None:
            self._definitions[enclosing_index].nested.append(index)
        return TypeEntry(self, index)

    def definition(self, entry: "TypeEntry") -> TypeDefinition:
        return self._definitions[entry.index]

    def resolve(self, ref: TypeRef):
        """Resolve a type reference, None if it is not defined here"""
        index = self._index.get((ref.namespace, ref.name))
        if index is None:
            return None
        return TypeEntry(self, index)

    def find(self, namespace: str, name: str):
        return self.resolve(TypeRef(namespace, name))

    def find_required(self, namespace: str, name: str) -> "TypeEntry":
        entry = self.find(namespace, name)
        if entry is None:
            raise KeyError(f"Type not found: {namespace}.{name}")
        return entry

    def types(self) -> list["TypeEntry"]:
        return [TypeEntry(self, index) for index in range(len(self._definitions))]

    def types_in(self, namespace: str) -> list["TypeEntry"]:
        return [entry for entry in self.types() if entry.namespace == namespace]

    def namespaces(self) -> list[str]:
        seen = {}
        for definition in self._definitions:
            seen.setdefault(definition.namespace, None)
        return list(seen)

    def find_method_owner(self, name: str, namespace: str | None = None):
        """Find (class entry, method) for a function, preferring the given namespace"""
        classes = [entry for entry in self.types() if entry.kind is TypeKind.CLASS]
        if namespace is not None:
            classes.sort(key=lambda entry: entry.namespace != namespace)
        for entry in classes:
            for method in entry.methods:
                if method.name == name:
                    return entry, method
        return None

    def find_method(self, name: str, namespace: str | None = None):
        """Find a function on a class type, preferring the given namespace"""
        found = self.find_method_owner(name, namespace)
        return found[1] if found else None

    def __len__(self) -> int:
        return len(self._definitions)


@dataclass(frozen=True)
class TypeEntry:
    """Non-owning handle to one type definition"""
    database: MetadataDatabase = field(repr=False)
    index: int

    @property
    def _definition(self) -> TypeDefinition:
        return self.database.definition(self)

    @property
    def namespace(self) -> str:
        return self._definition.namespace

    @property
    def name(self) -> str:
        return self._definition.name

    @property
    def kind(self) -> TypeKind:
        return self._definition.kind

    @property
    def fields(self) -> list[FieldDef]:
        return self._definition.fields

    @property
    def methods(self) -> list[MethodDef]:
        return self._definition.methods

    @property
    def attributes(self) -> list[CustomAttribute]:
        return self._definition.attributes

    @property
    def base(self) -> TypeRef | None:
        return self._definition.base

    @property
    def is_union(self) -> bool:
        return self._definition.is_union

    @property
    def explicit_layout(self) -> bool:
        return self._definition.explicit_layout

    @property
    def enclosing(self):
        index = self._definition.enclosing
        if index is None:
            return None
        return TypeEntry(self.database, index)

    @property
    def is_nested(self) -> bool:
        return self._definition.enclosing is not None

    @property
    def nested_types(self) -> list["TypeEntry"]:
        return [TypeEntry(self.database, index) for index in self._definition.nested]

    @property
    def path(self) -> str:
        enclosing = self.enclosing
        if enclosing is None:
            return self.name
        return f"{enclosing.path}/{self.name}"

    @property
    def full_name(self) -> str:
        return f"{self.namespace}.{self.path}"

    def __str__(self) -> str:
        return self.full_name


def get_attribute(owner, namespace: str, name: str):
    """Return the first custom attribute on owner matching namespace and name"""
    for attribute in owner.attributes:
        if attribute.namespace == namespace and attribute.name == name:
            return attribute
    return None
