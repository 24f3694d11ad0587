"""
Constants and mappings for C++ bindings generation
"""

from .metadata import ElementType


# Mapping from metadata element types to C++ types
CPP_TYPE_MAP = {
    ElementType.VOID: "void",
    ElementType.BOOLEAN: "bool",
    ElementType.CHAR: "wchar_t",
    ElementType.I1: "std::int8_t",
    ElementType.U1: "std::uint8_t",
    ElementType.I2: "std::int16_t",
    ElementType.U2: "std::uint16_t",
    ElementType.I4: "std::int32_t",
    ElementType.U4: "std::uint32_t",
    ElementType.I8: "std::int64_t",
    ElementType.U8: "std::uint64_t",
    ElementType.R4: "float",
    ElementType.R8: "double",
    ElementType.STRING: "wchar_t const*",
    ElementType.I: "std::intptr_t",
    ElementType.U: "std::uintptr_t",
    ElementType.OBJECT: "void*",
}

# Element types passed as 8 bytes on the stack (linkage size annotation)
EIGHT_BYTE_TYPES = {ElementType.I8, ElementType.U8, ElementType.R8}

# Custom attributes consumed by the emitters: (namespace, name)
FLAGS_ATTRIBUTE = ("System", "FlagsAttribute")
GUID_ATTRIBUTE = ("System.Runtime.InteropServices", "GuidAttribute")
FIXED_BUFFER_ATTRIBUTE = ("System.Runtime.CompilerServices", "FixedBufferAttribute")
RAII_FREE_ATTRIBUTE = ("Windows.Win32.Interop", "RAIIFreeAttribute")

# Name markers the metadata uses for compiler-generated nested types
FIXED_BUFFER_MARKER = "e__FixedBuffer"
UNION_MARKER = "_e__Union"

# Root interface; it gets no guid_v specialization
ROOT_INTERFACE = "IUnknown"

# Method that carries a delegate's signature
DELEGATE_INVOKE = "Invoke"


# Root C++ namespace for generated code
ROOT_NAMESPACE = "win32"

# Name of the local holding a wrapped call's result
RESULT_NAME = "win32_impl_result"

# Default output file names
DEFAULT_HEADER = "win32.h"
BASE_HEADER = "win32_base.h"
