"""
Code generation functions for C++ bindings
"""

import re

from .constants import (
    BASE_HEADER,
    CPP_TYPE_MAP,
    FIXED_BUFFER_MARKER,
    FLAGS_ATTRIBUTE,
    GUID_ATTRIBUTE,
    RAII_FREE_ATTRIBUTE,
    RESULT_NAME,
    ROOT_INTERFACE,
    ROOT_NAMESPACE,
)
from .dependency_sorter import get_delegate_method
from .errors import BindingGenerationError, MalformedAttributeError
from .guid import format_guid, guid_string_from_attribute, parse_guid
from .metadata import ElementType, get_attribute
from .signatures import SignatureCategory, SignatureRole, format_constant, qualified_name


INDENT = "    "


def indent(text: str, depth: int = 1) -> str:
    """Indent every non-empty line of text by depth levels"""
    prefix = INDENT * depth
    return "".join(prefix + line if line.strip() else line for line in text.splitlines(keepends=True))


def _lines(lines: list[str]) -> str:
    return "\n".join(lines) + "\n"


class CodeGenerator:
    """Generates C++ declarations from metadata type entries"""

    def __init__(self, classifier, root_interface: str = ROOT_INTERFACE):
        self.classifier = classifier
        self.root_interface = root_interface
        self.flag_enums = []  # (pattern, is_regex)
        self.skipped_members = []  # (type full name, field name)

    def add_flag_enum(self, pattern: str, is_regex: bool = False):
        """Treat matching enums as bit flags even without FlagsAttribute"""
        self.flag_enums.append((pattern, is_regex))

    def is_flag_enum(self, entry) -> bool:
        if get_attribute(entry, *FLAGS_ATTRIBUTE):
            return True
        for pattern, is_regex in self.flag_enums:
            if is_regex:
                if re.fullmatch(pattern, entry.name):
                    return True
            elif pattern == entry.name:
                return True
        return False

    @staticmethod
    def _escape_keyword(name: str) -> str:
        """Escape C++ keywords by appending an underscore"""
        # C++ keywords that might appear as identifiers
        cpp_keywords = {
            'alignas', 'alignof', 'and', 'asm', 'auto', 'bool', 'break', 'case', 'catch',
            'char', 'class', 'const', 'constexpr', 'const_cast', 'continue', 'decltype',
            'default', 'delete', 'do', 'double', 'dynamic_cast', 'else', 'enum', 'explicit',
            'export', 'extern', 'false', 'float', 'for', 'friend', 'goto', 'if', 'inline',
            'int', 'long', 'mutable', 'namespace', 'new', 'noexcept', 'not', 'nullptr',
            'operator', 'or', 'private', 'protected', 'public', 'register', 'reinterpret_cast',
            'return', 'short', 'signed', 'sizeof', 'static', 'static_assert', 'static_cast',
            'struct', 'switch', 'template', 'this', 'throw', 'true', 'try', 'typedef',
            'typeid', 'typename', 'union', 'unsigned', 'using', 'virtual', 'void',
            'volatile', 'while', 'xor',
        }
        if name in cpp_keywords:
            return f"{name}_"
        return name

    def _param_name(self, param, position: int) -> str:
        return self._escape_keyword(param.name or f"param{position}")

    def _constant_declaration(self, literal_field) -> str:
        constant = literal_field.constant
        return (f"    static constexpr {CPP_TYPE_MAP[constant.type]} "
                f"{self._escape_keyword(literal_field.name)} = {format_constant(constant)};")

    # Enumerations

    def _enum_underlying_type(self, entry) -> str:
        if not entry.fields:
            return CPP_TYPE_MAP[ElementType.I4]
        # The first field is the non-literal value__ field carrying the width
        return self.classifier.render(entry.fields[0].signature, entry.namespace)

    def generate_enum(self, entry) -> str:
        """Generate a scoped enum"""
        lines = [f"enum class {entry.name} : {self._enum_underlying_type(entry)}", "{"]
        for enum_field in entry.fields:
            if enum_field.is_literal:
                lines.append(f"    {self._escape_keyword(enum_field.name)} = {format_constant(enum_field.constant)},")
        lines.append("};")
        return _lines(lines)

    def generate_enum_operators(self, entry) -> str:
        """Generate bitwise operators for a flags enum, empty otherwise"""
        if not self.is_flag_enum(entry):
            return ""

        name = entry.name
        lines = []

        def binary(op):
            lines.extend([
                f"constexpr auto operator{op}({name} const left, {name} const right) noexcept",
                "{",
                f"    return static_cast<{name}>(_impl_::to_underlying_type(left) {op} _impl_::to_underlying_type(right));",
                "}",
            ])

        def assign(op):
            lines.extend([
                f"constexpr auto operator{op}=({name}& left, {name} const right) noexcept",
                "{",
                f"    left = left {op} right;",
                "    return left;",
                "}",
            ])

        binary("|")
        assign("|")
        binary("&")
        assign("&")
        lines.extend([
            f"constexpr auto operator~({name} const value) noexcept",
            "{",
            f"    return static_cast<{name}>(~_impl_::to_underlying_type(value));",
            "}",
        ])
        binary("^")
        assign("^")
        return _lines(lines)

    # Structs and unions

    def generate_forward(self, entry) -> str:
        keyword = "union" if entry.is_union else "struct"
        return f"{keyword} {entry.name};\n"

    def generate_struct(self, entry) -> str:
        """Generate a struct or union, nested declarations first"""
        namespace = entry.namespace
        keyword = "union" if entry.is_union else "struct"
        parts = [_lines([f"{keyword} {entry.name}", "{"])]

        for nested in entry.nested_types:
            # Fixed buffers are written as arrays of their element type
            if FIXED_BUFFER_MARKER in nested.name:
                continue
            parts.append(indent(self.generate_struct(nested)))

        fields = []
        for struct_field in entry.fields:
            if struct_field.is_literal:
                continue
            if self.classifier.is_union_member(struct_field):
                # TODO: explicit-layout unions need a layout-preserving representation
                self.skipped_members.append((entry.full_name, struct_field.name))
                continue
            classified = self.classifier.classify_field(struct_field, namespace)
            field_name = self._escape_keyword(struct_field.name)
            if classified.array_size is not None:
                fields.append(f"    {classified.abi} {field_name}[{classified.array_size}];")
            else:
                fields.append(f"    {classified.abi} {field_name};")

        for struct_field in entry.fields:
            if struct_field.is_literal:
                fields.append(self._constant_declaration(struct_field))

        fields.append("};")
        parts.append(_lines(fields))
        return "".join(parts)

    # Signatures shared by delegates, interfaces and classes

    def _has_return(self, method) -> bool:
        sig = method.return_type
        if sig is None:
            return False
        return not (sig.element is ElementType.VOID and sig.ptr_count == 0 and not sig.is_array)

    def _abi_return(self, method, namespace) -> str:
        if not self._has_return(method):
            return "void"
        return self.classifier.classify(method.return_type, namespace, SignatureRole.RETURN).abi

    def _consume_return(self, method, namespace) -> str:
        if not self._has_return(method):
            return "void"
        return self.classifier.classify(method.return_type, namespace, SignatureRole.RETURN).consume

    def _abi_params(self, method, namespace, with_names: bool = True) -> str:
        params = []
        for position, param in enumerate(method.params):
            abi = self.classifier.classify(param.signature, namespace, SignatureRole.PARAM, param.is_in).abi
            if with_names:
                params.append(f"{abi} {self._param_name(param, position)}")
            else:
                params.append(abi)
        return ", ".join(params)

    def _consume_params(self, method, namespace) -> str:
        params = []
        for position, param in enumerate(method.params):
            consume = self.classifier.classify(param.signature, namespace, SignatureRole.PARAM, param.is_in).consume
            params.append(f"{consume} {self._param_name(param, position)}")
        return ", ".join(params)

    def _method_args(self, method) -> str:
        args = []
        for position, param in enumerate(method.params):
            name = self._param_name(param, position)
            if self.classifier.category(param.signature) is SignatureCategory.INTERFACE:
                if param.is_in:
                    args.append(f"*(void**)(&{name})")
                else:
                    args.append(f"_impl_::bind_out({name})")
            else:
                args.append(name)
        return ", ".join(args)

    def _call_body(self, method, call: str, namespace) -> list[str]:
        """Bind and return the result of a translated call"""
        if not self._has_return(method):
            return [f"    {call};"]
        lines = [f"    auto {RESULT_NAME} = {call};"]
        classified = self.classifier.classify(method.return_type, namespace, SignatureRole.RETURN)
        if classified.category is SignatureCategory.INTERFACE:
            # The callee transfers ownership of the returned reference
            lines.append(f"    return {classified.consume}{{ {RESULT_NAME}, take_ownership_from_abi }};")
        else:
            lines.append(f"    return {RESULT_NAME};")
        return lines

    # Delegates

    def generate_delegate(self, entry) -> str:
        """Generate a function pointer alias for a delegate"""
        method = get_delegate_method(entry)
        if method is None:
            raise BindingGenerationError("Delegate has no Invoke method", type_name=entry.full_name)
        namespace = entry.namespace
        return (f"using {entry.name} = std::add_pointer_t<{self._abi_return(method, namespace)} "
                f"__stdcall({self._abi_params(method, namespace, with_names=False)})>;\n")

    # Interfaces

    def _base_interface(self, entry) -> str:
        if entry.base is None:
            return ""
        base = self.classifier.database.resolve(entry.base)
        if base is not None:
            return f" : {self.classifier.type_name(base, entry.namespace)}"
        return f" : {qualified_name(entry.base.namespace, entry.base.name, entry.namespace)}"

    def generate_interface(self, entry) -> str:
        """Generate a virtual-dispatch interface declaration"""
        namespace = entry.namespace
        lines = [f"struct WIN32_NOVTABLE {entry.name}{self._base_interface(entry)}", "{"]
        for method in entry.methods:
            lines.append(
                f"    virtual {self._abi_return(method, namespace)} __stdcall "
                f"{method.name}({self._abi_params(method, namespace)}) noexcept = 0;")
        lines.append("};")
        return _lines(lines)

    def generate_guid(self, entry) -> str:
        """Generate the guid_v specialization for an interface, empty if it has none"""
        if entry.name == self.root_interface:
            return ""
        attribute = get_attribute(entry, *GUID_ATTRIBUTE)
        if attribute is None:
            return ""
        guid_string = guid_string_from_attribute(attribute, entry.full_name)
        try:
            value = parse_guid(guid_string)
        except MalformedAttributeError as e:
            raise MalformedAttributeError(e.message, type_name=entry.full_name, attribute=GUID_ATTRIBUTE[1])
        name = qualified_name(entry.namespace, entry.name)
        return f"template <> inline constexpr guid guid_v<{name}>{{ {format_guid(value)} }}; // {guid_string}\n"

    # Classes: ABI linkage and consumption layer

    @staticmethod
    def _public_methods(entry):
        return [method for method in entry.methods if method.is_public]

    def generate_class_abi(self, entry) -> str:
        """Generate extern "C" declarations and linkage annotations for a class"""
        methods = self._public_methods(entry)
        if not methods:
            return ""
        lines = ['extern "C"', "{"]
        for method in methods:
            lines.append(
                f"    {self._abi_return(method, None)} __stdcall WIN32_IMPL_{method.name}"
                f"({self._abi_params(method, None)}) noexcept;")
        lines.append("}")
        for method in methods:
            size = sum(self.classifier.param_size(param.signature) for param in method.params)
            lines.append(f"WIN32_IMPL_LINK({method.name}, {size})")
        return _lines(lines)

    def _class_method(self, method, namespace) -> list[str]:
        modifier = "static " if method.is_static else ""
        call = f"WIN32_IMPL_{method.name}({self._method_args(method)})"
        lines = [
            f"    {modifier}{self._consume_return(method, namespace)} {method.name}({self._consume_params(method, namespace)})",
            "    {",
        ]
        lines.extend(INDENT + line for line in self._call_body(method, call, namespace))
        lines.append("    }")
        return lines

    def generate_class(self, entry) -> str:
        """Generate the consumption-layer wrapper for a class"""
        namespace = entry.namespace
        lines = [f"struct {entry.name}", "{"]
        for method in self._public_methods(entry):
            lines.extend(self._class_method(method, namespace))

        constants = [class_field for class_field in entry.fields if class_field.is_literal]
        if constants:
            if len(lines) > 2:
                lines.append("")
            for class_field in constants:
                lines.append(self._constant_declaration(class_field))
        lines.append("};")
        return _lines(lines)

    def generate_raii_helpers(self, entry, helpers: set, batch=None) -> str:
        """Generate one owning handle alias per release function not yet in helpers

        When batch is given, the class declaring each release function must be
        part of it, since the alias names that function's ABI declaration.
        """
        namespace = entry.namespace
        lines = []
        for method in entry.methods:
            for param in method.params:
                attribute = get_attribute(param, *RAII_FREE_ATTRIBUTE)
                if attribute is None:
                    continue
                if len(attribute.args) != 1 or not isinstance(attribute.args[0], str):
                    raise MalformedAttributeError(
                        f"RAIIFreeAttribute expects one string argument, got {len(attribute.args)}",
                        type_name=entry.full_name, attribute=RAII_FREE_ATTRIBUTE[1])
                function_name = attribute.args[0]
                if function_name in helpers:
                    continue
                helpers.add(function_name)

                found = self.classifier.database.find_method_owner(function_name, namespace)
                if found is None:
                    raise MalformedAttributeError(
                        f"RAIIFreeAttribute names unknown function '{function_name}'",
                        type_name=entry.full_name, attribute=RAII_FREE_ATTRIBUTE[1])
                owner, function = found
                if batch is not None and owner not in batch:
                    raise MalformedAttributeError(
                        f"Release function '{function_name}' is declared by '{owner.full_name}', "
                        f"which is not part of this batch",
                        type_name=entry.full_name, attribute=RAII_FREE_ATTRIBUTE[1])
                if not function.params:
                    raise MalformedAttributeError(
                        f"Release function '{function_name}' takes no parameters",
                        type_name=entry.full_name, attribute=RAII_FREE_ATTRIBUTE[1])
                first = function.params[0]
                handle_type = self.classifier.classify(first.signature, namespace, SignatureRole.PARAM, first.is_in).abi
                lines.append(
                    f"using unique_{function_name} = unique_any<{handle_type}, "
                    f"decltype(&WIN32_IMPL_{function_name}), WIN32_IMPL_{function_name}>;")
        if not lines:
            return ""
        return _lines(lines)

    # Interface consumption helpers

    @staticmethod
    def impl_name(entry) -> str:
        return f"{entry.namespace.replace('.', '_')}_{entry.name}"

    def generate_consume(self, entry) -> str:
        """Generate consume_ declarations and inline definitions for an interface"""
        impl_name = self.impl_name(entry)
        interface_name = qualified_name(entry.namespace, entry.name)

        lines = [f"struct consume_{impl_name}", "{"]
        for method in entry.methods:
            lines.append(
                f"    WIN32_IMPL_AUTO({self._consume_return(method, None)}) "
                f"{method.name}({self._consume_params(method, None)}) const;")
        lines.append("};")

        for method in entry.methods:
            call = f"WIN32_IMPL_SHIM({interface_name})->{method.name}({self._method_args(method)})"
            lines.append(
                f"inline WIN32_IMPL_AUTO({self._consume_return(method, None)}) consume_{impl_name}::"
                f"{method.name}({self._consume_params(method, None)}) const")
            lines.append("{")
            lines.extend(self._call_body(method, call, None))
            lines.append("}")
        return _lines(lines)


_BASE_HEADER = """#pragma once

#include <cstdint>
#include <limits>
#include <type_traits>
#include <utility>

#ifdef _MSC_VER
#define WIN32_NOVTABLE __declspec(novtable)
#else
#define WIN32_NOVTABLE
#endif

#ifndef _WIN32
#define __stdcall
#endif

#if defined(_MSC_VER) && defined(_M_IX86)
#define WIN32_IMPL_LINK(function, count) __pragma(comment(linker, "/alternatename:_WIN32_IMPL_" #function "@" #count "=_" #function "@" #count))
#elif defined(_MSC_VER)
#define WIN32_IMPL_LINK(function, count) __pragma(comment(linker, "/alternatename:WIN32_IMPL_" #function "=" #function))
#else
#define WIN32_IMPL_LINK(function, count)
#endif

#define WIN32_IMPL_AUTO(...) __VA_ARGS__
#define WIN32_IMPL_SHIM(...) (*(__VA_ARGS__* const*)(this))

namespace @
{
    struct guid
    {
        std::uint32_t Data1;
        std::uint16_t Data2;
        std::uint16_t Data3;
        std::uint8_t Data4[8];
    };

    template <typename T>
    inline constexpr guid guid_v{};

    struct take_ownership_from_abi_t {};
    inline constexpr take_ownership_from_abi_t take_ownership_from_abi{};

    template <typename T>
    struct com_ptr
    {
        com_ptr() noexcept = default;
        com_ptr(void* ptr, take_ownership_from_abi_t) noexcept : m_ptr(static_cast<T*>(ptr)) {}
        com_ptr(com_ptr const& other) noexcept : m_ptr(other.m_ptr) { add_ref(); }
        com_ptr(com_ptr&& other) noexcept : m_ptr(std::exchange(other.m_ptr, nullptr)) {}
        ~com_ptr() noexcept { release(); }

        com_ptr& operator=(com_ptr other) noexcept
        {
            std::swap(m_ptr, other.m_ptr);
            return *this;
        }

        explicit operator bool() const noexcept { return m_ptr != nullptr; }
        T* operator->() const noexcept { return m_ptr; }
        T* get() const noexcept { return m_ptr; }

        void** put() noexcept
        {
            release();
            return reinterpret_cast<void**>(&m_ptr);
        }

    private:
        void add_ref() const noexcept
        {
            if (m_ptr) m_ptr->AddRef();
        }

        void release() noexcept
        {
            if (m_ptr) std::exchange(m_ptr, nullptr)->Release();
        }

        T* m_ptr{};
    };

    template <typename T, typename Close, Close close>
    struct unique_any
    {
        unique_any() noexcept = default;
        explicit unique_any(T value) noexcept : m_value(value), m_owned(true) {}
        unique_any(unique_any const&) = delete;
        unique_any& operator=(unique_any const&) = delete;
        unique_any(unique_any&& other) noexcept : m_value(other.m_value), m_owned(std::exchange(other.m_owned, false)) {}

        unique_any& operator=(unique_any&& other) noexcept
        {
            if (this != &other)
            {
                reset();
                m_value = other.m_value;
                m_owned = std::exchange(other.m_owned, false);
            }
            return *this;
        }

        ~unique_any() noexcept { reset(); }

        T get() const noexcept { return m_value; }

        T* put() noexcept
        {
            reset();
            m_owned = true;
            return &m_value;
        }

        void reset() noexcept
        {
            if (m_owned)
            {
                m_owned = false;
                close(m_value);
            }
        }

    private:
        T m_value{};
        bool m_owned{};
    };

    namespace _impl_
    {
        template <typename T>
        constexpr auto to_underlying_type(T const value) noexcept
        {
            return static_cast<std::underlying_type_t<T>>(value);
        }

        template <typename T>
        void** bind_out(com_ptr<T>& object) noexcept
        {
            return object.put();
        }
    }
}
"""


class OutputBuilder:
    """Builds the final C++ header files"""

    @staticmethod
    def cpp_namespace(namespace: str | None) -> str | None:
        """Map a metadata namespace to its C++ namespace

        None stays at global scope and "" is the root namespace.
        """
        if namespace is None:
            return None
        if not namespace:
            return ROOT_NAMESPACE
        return f"{ROOT_NAMESPACE}::{namespace.replace('.', '::')}"

    @staticmethod
    def wrap_namespace(cpp_namespace: str | None, body: str) -> str:
        if cpp_namespace is None:
            return body
        return f"namespace {cpp_namespace}\n{{\n{indent(body)}}}\n"

    @staticmethod
    def build_section(declarations: list[tuple[str | None, str]]) -> str:
        """Join declarations, sharing one namespace block between neighbours"""
        blocks = []
        current = None
        body = []
        for cpp_namespace, text in declarations:
            if not text:
                continue
            if body and cpp_namespace != current:
                blocks.append(OutputBuilder.wrap_namespace(current, "".join(body)))
                body = []
            current = cpp_namespace
            body.append(text)
        if body:
            blocks.append(OutputBuilder.wrap_namespace(current, "".join(body)))
        return "\n".join(blocks)

    @staticmethod
    def build(sections: list[list[tuple[str | None, str]]], base_header: str = BASE_HEADER) -> str:
        """Build the main header from ordered sections of declarations"""
        parts = ["#pragma once\n", f'#include "{base_header}"\n']
        for section in sections:
            text = OutputBuilder.build_section(section)
            if text:
                parts.append(text)
        return "\n".join(parts)

    @staticmethod
    def build_base() -> str:
        """Build the support header the generated declarations rely on"""
        return _BASE_HEADER.replace("namespace @", f"namespace {ROOT_NAMESPACE}")
