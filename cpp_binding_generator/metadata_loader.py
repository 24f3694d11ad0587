"""
XML metadata description parsing

Convenience attributes (enum flags, interface guids, fixed buffers, release
functions) are turned into the nested types and custom attributes the
generator expects to find in real metadata.
"""

import xml.etree.ElementTree as ET

from .constants import (
    DELEGATE_INVOKE,
    FIXED_BUFFER_ATTRIBUTE,
    FLAGS_ATTRIBUTE,
    GUID_ATTRIBUTE,
    RAII_FREE_ATTRIBUTE,
)
from .metadata import (
    Constant,
    CustomAttribute,
    ElementType,
    FieldDef,
    MetadataDatabase,
    MethodDef,
    ParamDef,
    TypeKind,
    TypeRef,
    TypeSig,
)


TYPE_TAGS = {
    "enum": TypeKind.ENUM,
    "struct": TypeKind.STRUCT,
    "union": TypeKind.STRUCT,
    "delegate": TypeKind.DELEGATE,
    "interface": TypeKind.INTERFACE,
    "class": TypeKind.CLASS,
}


def _required(element, attribute: str, context: str) -> str:
    value = element.get(attribute)
    if not value:
        raise ValueError(f"{context} element missing '{attribute}' attribute")
    return value.strip()


def _is_true(element, attribute: str, default: bool = False) -> bool:
    value = element.get(attribute)
    if value is None:
        return default
    return value.strip().lower() == "true"


class MetadataLoader:
    """Loads XML metadata descriptions into a MetadataDatabase"""

    def __init__(self, database: MetadataDatabase | None = None):
        self.database = database if database is not None else MetadataDatabase()

    def load_file(self, path) -> MetadataDatabase:
        try:
            tree = ET.parse(path)
        except ET.ParseError as e:
            raise ValueError(f"XML parsing error in {path}: {e}")
        except FileNotFoundError:
            raise FileNotFoundError(f"Metadata file not found: {path}")
        return self.load_element(tree.getroot())

    def load_string(self, text: str) -> MetadataDatabase:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise ValueError(f"XML parsing error: {e}")
        return self.load_element(root)

    def load_element(self, root) -> MetadataDatabase:
        if root.tag != "metadata":
            raise ValueError(f"Expected root element 'metadata', got '{root.tag}'")
        for namespace_element in root.findall("namespace"):
            namespace = _required(namespace_element, "name", "Namespace")
            for child in namespace_element:
                if child.tag not in TYPE_TAGS:
                    raise ValueError(f"Unknown element '{child.tag}' in namespace '{namespace}'")
                self._load_type(child, namespace)
        return self.database

    # Signatures

    def parse_type(self, text: str, namespace: str, scope=None, pointer: int = 0, array: str | None = None) -> TypeSig:
        """Parse a type name into a signature

        Element type names (I4, U8, ...) become primitives; dotted names are
        namespace-qualified; bare names resolve to a nested type of an
        enclosing scope first, then to the current namespace.
        """
        array_sizes = ()
        if array:
            try:
                array_sizes = tuple(int(size, 0) for size in array.split(","))
            except ValueError:
                raise ValueError(f"Invalid array extent '{array}' for type '{text}'")

        element = ElementType.from_name(text)
        if element is not None:
            return TypeSig(element=element, ptr_count=pointer, array_sizes=array_sizes)
        return TypeSig(type_ref=self._type_ref(text, namespace, scope), ptr_count=pointer, array_sizes=array_sizes)

    def _type_ref(self, text: str, namespace: str, scope) -> TypeRef:
        head, separator, nested_path = text.partition("/")
        if "." in head:
            type_namespace, _, outer = head.rpartition(".")
            return TypeRef(type_namespace, outer + separator + nested_path)

        while scope is not None:
            candidate = TypeRef(scope.namespace, f"{scope.path}/{text}")
            if self.database.resolve(candidate) is not None:
                return candidate
            scope = scope.enclosing
        return TypeRef(namespace, text)

    def _signature(self, element, namespace: str, scope=None, context: str = "Field") -> TypeSig:
        return self.parse_type(
            _required(element, "type", context),
            namespace,
            scope,
            pointer=int(element.get("pointer", "0")),
            array=element.get("array"),
        )

    @staticmethod
    def _constant_value(element_type: ElementType, text: str):
        if element_type is ElementType.STRING:
            return text
        if element_type is ElementType.BOOLEAN:
            return text.strip().lower() == "true"
        if element_type in (ElementType.R4, ElementType.R8):
            return float(text)
        return int(text, 0)

    def _constant(self, element, default_type: str | None = None) -> FieldDef:
        name = _required(element, "name", "Constant")
        type_name = element.get("type", default_type)
        element_type = ElementType.from_name(type_name) if type_name else None
        if element_type is None:
            raise ValueError(f"Constant '{name}' must have a primitive type, got '{type_name}'")
        value = _required(element, "value", "Constant")
        try:
            constant = Constant(element_type, self._constant_value(element_type, value))
        except ValueError:
            raise ValueError(f"Invalid value '{value}' for constant '{name}'")
        return FieldDef(name, TypeSig(element=element_type), constant)

    def _attributes(self, element, namespace: str) -> list[CustomAttribute]:
        attributes = []
        for attribute in element.findall("attribute"):
            args = []
            for arg in attribute.findall("arg"):
                kind = arg.get("kind", "string")
                value = arg.get("value", "")
                if kind == "int":
                    args.append(int(value, 0))
                elif kind == "type":
                    args.append(self.parse_type(value, namespace))
                elif kind == "string":
                    args.append(value)
                else:
                    raise ValueError(f"Unknown attribute argument kind '{kind}'")
            attributes.append(CustomAttribute(
                _required(attribute, "namespace", "Attribute"),
                _required(attribute, "name", "Attribute"),
                tuple(args),
            ))
        return attributes

    # Members

    def _param(self, element, namespace: str, position: int) -> ParamDef:
        direction = element.get("direction", "in").strip().lower()
        if direction not in ("in", "out", "inout"):
            raise ValueError(f"Invalid parameter direction '{direction}'")
        attributes = self._attributes(element, namespace)
        release = element.get("free")
        if release:
            attributes.append(CustomAttribute(*RAII_FREE_ATTRIBUTE, (release.strip(),)))
        return ParamDef(
            element.get("name", f"param{position}"),
            self._signature(element, namespace, context="Param"),
            is_in=direction in ("in", "inout"),
            is_out=direction in ("out", "inout"),
            attributes=attributes,
        )

    def _method(self, element, namespace: str, static_default: bool) -> MethodDef:
        return_element = element.find("return")
        return_type = None
        if return_element is not None:
            return_type = self._signature(return_element, namespace, context="Return")
        return MethodDef(
            name=_required(element, "name", "Method"),
            params=[self._param(param, namespace, position) for position, param in enumerate(element.findall("param"))],
            return_type=return_type,
            is_public=_is_true(element, "public", True),
            is_static=_is_true(element, "static", static_default),
            attributes=self._attributes(element, namespace),
        )

    # Types

    def _load_type(self, element, namespace: str, enclosing=None):
        kind = TYPE_TAGS[element.tag]
        name = _required(element, "name", element.tag.capitalize())
        attributes = self._attributes(element, namespace)

        base = None
        if kind is TypeKind.ENUM and _is_true(element, "flags"):
            attributes.append(CustomAttribute(*FLAGS_ATTRIBUTE))
        if kind is TypeKind.INTERFACE:
            if element.get("guid"):
                attributes.append(CustomAttribute(*GUID_ATTRIBUTE, (element.get("guid").strip(),)))
            if element.get("base"):
                base = self.parse_type(element.get("base").strip(), namespace).type_ref

        is_union = element.tag == "union"
        entry = self.database.add_type(
            namespace,
            name,
            kind,
            enclosing=enclosing,
            attributes=attributes,
            base=base,
            is_union=is_union,
            explicit_layout=is_union or element.get("layout", "").strip().lower() == "explicit",
        )
        definition = self.database.definition(entry)

        if kind is TypeKind.ENUM:
            underlying = element.get("type", "I4")
            definition.fields.append(FieldDef("value__", self.parse_type(underlying, namespace)))
            for member in element.findall("member"):
                definition.fields.append(self._constant(member, underlying))
            return entry

        # Nested declarations exist before fields refer to them
        for child in element:
            if child.tag in ("struct", "union"):
                self._load_type(child, namespace, entry)

        for child in element:
            if child.tag == "field":
                definition.fields.append(self._field(child, entry))
            elif child.tag == "constant":
                definition.fields.append(self._constant(child))
            elif child.tag == "method":
                definition.methods.append(self._method(child, namespace, kind is TypeKind.CLASS))

        if kind is TypeKind.DELEGATE:
            definition.methods.append(self._delegate_invoke(element, namespace))
        return entry

    def _delegate_invoke(self, element, namespace: str) -> MethodDef:
        return_element = element.find("return")
        return MethodDef(
            name=DELEGATE_INVOKE,
            params=[self._param(param, namespace, position) for position, param in enumerate(element.findall("param"))],
            return_type=self._signature(return_element, namespace, context="Return") if return_element is not None else None,
            is_static=False,
        )

    def _field(self, element, entry) -> FieldDef:
        name = _required(element, "name", "Field")
        namespace = entry.namespace
        attributes = self._attributes(element, namespace)
        fixed = element.get("fixed")
        if fixed is None:
            return FieldDef(name, self._signature(element, namespace, entry), attributes=attributes)

        # Fixed-size buffers become a nested type holding one element
        element_sig = self._signature(element, namespace, entry)
        buffer_name = f"_{name}_e__FixedBuffer"
        buffer = self.database.add_type(
            namespace, buffer_name, TypeKind.STRUCT, enclosing=entry,
            fields=[FieldDef("FixedElementField", element_sig)],
        )
        attributes.append(CustomAttribute(*FIXED_BUFFER_ATTRIBUTE, (element_sig, int(fixed, 0))))
        return FieldDef(name, TypeSig(type_ref=TypeRef(namespace, buffer.path)), attributes=attributes)


def load_metadata(paths) -> MetadataDatabase:
    """Load one or more metadata files into a single database"""
    loader = MetadataLoader()
    for path in paths:
        loader.load_file(path)
    return loader.database


def parse_metadata_string(text: str) -> MetadataDatabase:
    return MetadataLoader().load_string(text)
