"""
Signature classification: maps metadata signatures to ABI and consumption C++ types
"""

import math
from dataclasses import dataclass
from enum import Enum

from .constants import (
    CPP_TYPE_MAP,
    EIGHT_BYTE_TYPES,
    FIXED_BUFFER_ATTRIBUTE,
    FIXED_BUFFER_MARKER,
    ROOT_NAMESPACE,
    UNION_MARKER,
)
from .errors import MalformedAttributeError, UnsupportedLayoutError
from .metadata import ElementType, TypeKind, TypeSig, get_attribute


class SignatureCategory(Enum):
    PRIMITIVE = "primitive"
    POINTER = "pointer"
    FIXED_ARRAY = "fixed_array"
    RECORD = "record"
    DELEGATE = "delegate"
    INTERFACE = "interface"
    ENUM = "enum"


class SignatureRole(Enum):
    FIELD = "field"
    PARAM = "param"
    RETURN = "return"


@dataclass(frozen=True)
class ClassifiedSignature:
    category: SignatureCategory
    abi: str
    consume: str
    entry: object = None
    array_size: int | None = None
    ptr_count: int = 0


def qualified_name(namespace: str, name: str, current_namespace: str | None = None) -> str:
    """Name a type as seen from current_namespace (None means global scope)"""
    if namespace == current_namespace:
        return name
    return f"{ROOT_NAMESPACE}::{namespace.replace('.', '::')}::{name}"


class SignatureClassifier:
    """Classifies signatures and renders them as C++ text"""

    def __init__(self, database):
        self.database = database

    def resolve(self, sig: TypeSig):
        if sig.type_ref is None:
            return None
        return self.database.resolve(sig.type_ref)

    def category(self, sig: TypeSig) -> SignatureCategory:
        entry = self.resolve(sig)
        # Interfaces are reference types; indirection does not change their category
        if entry is not None and entry.kind is TypeKind.INTERFACE:
            return SignatureCategory.INTERFACE
        if sig.is_array:
            return SignatureCategory.FIXED_ARRAY
        if sig.ptr_count > 0:
            return SignatureCategory.POINTER
        if sig.element is not None:
            return SignatureCategory.PRIMITIVE
        if entry is not None and entry.kind is TypeKind.ENUM:
            return SignatureCategory.ENUM
        if entry is not None and entry.kind is TypeKind.DELEGATE:
            return SignatureCategory.DELEGATE
        return SignatureCategory.RECORD

    def type_name(self, entry, namespace: str | None) -> str:
        """Render a declared type by name"""
        if entry.is_nested:
            return entry.name
        return qualified_name(entry.namespace, entry.name, namespace)

    def render(self, sig: TypeSig, namespace: str | None) -> str:
        """Render a signature without array extents"""
        if sig.element is not None:
            text = CPP_TYPE_MAP[sig.element]
        else:
            entry = self.resolve(sig)
            if entry is not None:
                text = self.type_name(entry, namespace)
            elif sig.type_ref.is_nested:
                text = sig.type_ref.simple_name
            else:
                text = qualified_name(sig.type_ref.namespace, sig.type_ref.name, namespace)
        return text + "*" * sig.ptr_count

    def classify(self, sig: TypeSig, namespace: str | None, role: SignatureRole = SignatureRole.FIELD,
                 is_in: bool = True) -> ClassifiedSignature:
        """Classify a signature and produce its ABI and consumption renderings

        Args:
            sig: The signature to classify
            namespace: Namespace the rendering will appear in (None for global scope)
            role: Whether the signature belongs to a field, parameter or return value
            is_in: Parameter direction; ignored for fields and return values
        """
        category = self.category(sig)
        entry = self.resolve(sig)

        if category is SignatureCategory.INTERFACE:
            name = self.type_name(entry, namespace)
            if role is SignatureRole.PARAM:
                if is_in:
                    return ClassifiedSignature(category, "void*", f"com_ptr<{name}> const&", entry, None, sig.ptr_count)
                return ClassifiedSignature(category, "void**", f"com_ptr<{name}>&", entry, None, sig.ptr_count)
            if role is SignatureRole.RETURN:
                return ClassifiedSignature(category, "void*", f"com_ptr<{name}>", entry, None, sig.ptr_count)
            return ClassifiedSignature(category, "void*", "void*", entry, None, sig.ptr_count)

        array_size = None
        if sig.is_array:
            if sig.array_rank != 1:
                raise UnsupportedLayoutError(
                    f"Arrays must have rank 1, got rank {sig.array_rank}",
                    type_name=entry.full_name if entry is not None else None,
                )
            array_size = sig.array_sizes[0]

        text = self.render(sig, namespace)
        if role is SignatureRole.PARAM and array_size is not None:
            # Arrays decay to pointers in parameter lists
            text += "*"
            array_size = None
        return ClassifiedSignature(category, text, text, entry, array_size, sig.ptr_count)

    def nested_type(self, sig: TypeSig):
        """Return the nested type a signature refers to, if any"""
        if sig.type_ref is None or not sig.type_ref.is_nested:
            return None
        entry = self.resolve(sig)
        if entry is not None and entry.is_nested:
            return entry
        return None

    def classify_field(self, field, namespace: str | None) -> ClassifiedSignature:
        """Classify a record field, special-casing compiler-generated nested types"""
        nested = self.nested_type(field.signature)
        if nested is not None:
            if FIXED_BUFFER_MARKER in nested.name:
                element_fields = [f for f in nested.fields if not f.is_literal]
                if not element_fields:
                    raise MalformedAttributeError(
                        "Fixed buffer type has no element field", type_name=nested.full_name)
                element = self.classify(element_fields[0].signature, namespace)
                length = self.fixed_buffer_length(field, nested)
                return ClassifiedSignature(
                    SignatureCategory.FIXED_ARRAY, element.abi, element.consume, element.entry, length, element.ptr_count)
            if self.is_union_member(field):
                raise UnsupportedLayoutError(
                    f"Explicit-layout union member '{field.name}' is not supported", type_name=nested.full_name)
        return self.classify(field.signature, namespace)

    def is_union_member(self, field) -> bool:
        """True if the field is typed as a nested explicit-layout union"""
        nested = self.nested_type(field.signature)
        return nested is not None and nested.explicit_layout and UNION_MARKER in nested.name

    def fixed_buffer_length(self, field, nested) -> int:
        attribute = get_attribute(field, *FIXED_BUFFER_ATTRIBUTE)
        if attribute is None:
            raise MalformedAttributeError(
                f"Fixed buffer field '{field.name}' has no FixedBufferAttribute",
                type_name=nested.full_name, attribute=FIXED_BUFFER_ATTRIBUTE[1])
        if len(attribute.args) != 2:
            raise MalformedAttributeError(
                f"FixedBufferAttribute expects 2 arguments, got {len(attribute.args)}",
                type_name=nested.full_name, attribute=FIXED_BUFFER_ATTRIBUTE[1])
        length = attribute.args[1]
        if not isinstance(length, int) or isinstance(length, bool):
            raise MalformedAttributeError(
                "FixedBufferAttribute length must be an integer",
                type_name=nested.full_name, attribute=FIXED_BUFFER_ATTRIBUTE[1])
        return length

    @staticmethod
    def param_size(sig: TypeSig) -> int:
        """Stack size a parameter contributes to the linkage annotation"""
        if sig.element is not None and sig.ptr_count == 0 and not sig.is_array:
            return 8 if sig.element in EIGHT_BYTE_TYPES else 4
        return 4


_SIGNED_LIMITS = {
    ElementType.I1: 8,
    ElementType.I2: 16,
    ElementType.I4: 32,
    ElementType.I8: 64,
}

_SUFFIXES = {
    ElementType.U1: "U",
    ElementType.U2: "U",
    ElementType.U4: "U",
    ElementType.U8: "ULL",
    ElementType.I8: "LL",
}


def format_constant(constant) -> str:
    """Render a metadata constant as a C++ literal"""
    value = constant.value
    kind = constant.type

    if kind is ElementType.BOOLEAN:
        return "true" if value else "false"
    if kind is ElementType.STRING:
        escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
        return f'L"{escaped}"'
    if kind in (ElementType.R4, ElementType.R8):
        value = float(value)
        if math.isnan(value) or math.isinf(value):
            # No literal spelling for non-finite values
            limits = f"std::numeric_limits<{CPP_TYPE_MAP[kind]}>"
            if math.isnan(value):
                return f"{limits}::quiet_NaN()"
            return f"{limits}::infinity()" if value > 0 else f"-{limits}::infinity()"
        text = repr(value)
        if kind is ElementType.R4:
            return text + "f"
        return text

    value = int(value)
    suffix = _SUFFIXES.get(kind, "")
    bits = _SIGNED_LIMITS.get(kind)
    if bits is not None and value == -(1 << (bits - 1)):
        # The most negative value has no literal spelling
        return f"(-{(1 << (bits - 1)) - 1}{suffix} - 1)"
    return f"{value}{suffix}"
