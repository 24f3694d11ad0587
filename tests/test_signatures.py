"""
Tests for signature classification and constant formatting
"""

import pytest

from cpp_binding_generator.constants import FIXED_BUFFER_ATTRIBUTE
from cpp_binding_generator.errors import MalformedAttributeError, UnsupportedLayoutError
from cpp_binding_generator.metadata import (
    Constant,
    CustomAttribute,
    ElementType,
    FieldDef,
    MetadataDatabase,
    TypeKind,
    TypeRef,
    TypeSig,
)
from cpp_binding_generator.metadata_loader import parse_metadata_string
from cpp_binding_generator.signatures import (
    SignatureCategory,
    SignatureClassifier,
    SignatureRole,
    format_constant,
    qualified_name,
)


FOUNDATION = "Windows.Win32.Foundation"


def _ref(name, namespace=FOUNDATION, ptr=0):
    return TypeSig(type_ref=TypeRef(namespace, name), ptr_count=ptr)


class TestCategories:
    """Test signature categories"""

    @pytest.fixture(autouse=True)
    def _classifier(self, foundation_db):
        self.classifier = SignatureClassifier(foundation_db)

    def test_primitive(self):
        assert self.classifier.category(TypeSig(element=ElementType.I4)) is SignatureCategory.PRIMITIVE

    def test_pointer(self):
        assert self.classifier.category(TypeSig(element=ElementType.U1, ptr_count=1)) is SignatureCategory.POINTER
        assert self.classifier.category(_ref("POINT", ptr=1)) is SignatureCategory.POINTER

    def test_fixed_array(self):
        sig = TypeSig(element=ElementType.U1, array_sizes=(16,))
        assert self.classifier.category(sig) is SignatureCategory.FIXED_ARRAY

    def test_record_enum_delegate(self):
        assert self.classifier.category(_ref("POINT")) is SignatureCategory.RECORD
        assert self.classifier.category(_ref("STATUS")) is SignatureCategory.ENUM
        assert self.classifier.category(_ref("CALLBACK")) is SignatureCategory.DELEGATE

    def test_interface_any_indirection(self):
        """Test interface references stay interfaces regardless of pointer count"""
        assert self.classifier.category(_ref("IStream")) is SignatureCategory.INTERFACE
        assert self.classifier.category(_ref("IStream", ptr=2)) is SignatureCategory.INTERFACE

    def test_unresolved_reference_is_record(self):
        assert self.classifier.category(_ref("UNKNOWN", "Elsewhere")) is SignatureCategory.RECORD


class TestRendering:
    """Test ABI and consumption renderings"""

    @pytest.fixture(autouse=True)
    def _classifier(self, foundation_db):
        self.classifier = SignatureClassifier(foundation_db)

    def test_qualified_name(self):
        assert qualified_name(FOUNDATION, "POINT", FOUNDATION) == "POINT"
        assert qualified_name(FOUNDATION, "POINT", "Other") == "win32::Windows::Win32::Foundation::POINT"
        assert qualified_name(FOUNDATION, "POINT") == "win32::Windows::Win32::Foundation::POINT"

    def test_primitive_renders_same_in_both_forms(self):
        classified = self.classifier.classify(TypeSig(element=ElementType.U4), FOUNDATION)

        assert classified.abi == classified.consume == "std::uint32_t"

    def test_pointer_rendering(self):
        classified = self.classifier.classify(_ref("POINT", ptr=2), FOUNDATION)

        assert classified.abi == "POINT**"

    def test_record_outside_namespace(self):
        classified = self.classifier.classify(_ref("POINT"), "Windows.Win32.Graphics")

        assert classified.abi == "win32::Windows::Win32::Foundation::POINT"

    def test_global_scope_rendering(self):
        """Test None renders everything fully qualified"""
        classified = self.classifier.classify(_ref("STATUS"), None)

        assert classified.abi == "win32::Windows::Win32::Foundation::STATUS"

    def test_interface_in_param(self):
        classified = self.classifier.classify(_ref("IStream", ptr=1), FOUNDATION, SignatureRole.PARAM, is_in=True)

        assert classified.abi == "void*"
        assert classified.consume == "com_ptr<IStream> const&"

    def test_interface_out_param(self):
        classified = self.classifier.classify(_ref("IStream", ptr=2), FOUNDATION, SignatureRole.PARAM, is_in=False)

        assert classified.abi == "void**"
        assert classified.consume == "com_ptr<IStream>&"

    def test_interface_return(self):
        classified = self.classifier.classify(_ref("IStream"), None, SignatureRole.RETURN)

        assert classified.abi == "void*"
        assert classified.consume == "com_ptr<win32::Windows::Win32::Foundation::IStream>"

    def test_interface_field(self):
        classified = self.classifier.classify(_ref("IStream", ptr=1), FOUNDATION)

        assert classified.abi == classified.consume == "void*"

    def test_array_field(self):
        classified = self.classifier.classify(TypeSig(element=ElementType.U1, array_sizes=(16,)), FOUNDATION)

        assert classified.abi == "std::uint8_t"
        assert classified.array_size == 16

    def test_array_param_decays(self):
        sig = TypeSig(element=ElementType.U1, array_sizes=(16,))
        classified = self.classifier.classify(sig, FOUNDATION, SignatureRole.PARAM)

        assert classified.abi == "std::uint8_t*"
        assert classified.array_size is None

    def test_multidimensional_array_rejected(self):
        sig = TypeSig(element=ElementType.I4, array_sizes=(2, 3))

        with pytest.raises(UnsupportedLayoutError, match="rank 1"):
            self.classifier.classify(sig, FOUNDATION)

    def test_param_size(self):
        """Test linkage sizes: 8 for 64-bit scalars, 4 otherwise"""
        assert SignatureClassifier.param_size(TypeSig(element=ElementType.I8)) == 8
        assert SignatureClassifier.param_size(TypeSig(element=ElementType.U8)) == 8
        assert SignatureClassifier.param_size(TypeSig(element=ElementType.R8)) == 8
        assert SignatureClassifier.param_size(TypeSig(element=ElementType.I8, ptr_count=1)) == 4
        assert SignatureClassifier.param_size(TypeSig(element=ElementType.I4)) == 4
        assert SignatureClassifier.param_size(_ref("POINT")) == 4


class TestNestedFields:
    """Test fixed buffers and union members"""

    def test_fixed_buffer_field(self):
        db = parse_metadata_string("""
<metadata>
    <namespace name="Test">
        <struct name="PATH">
            <field name="chars" type="Char" fixed="260"/>
        </struct>
    </namespace>
</metadata>
""")
        entry = db.find_required("Test", "PATH")
        classified = SignatureClassifier(db).classify_field(entry.fields[0], "Test")

        assert classified.category is SignatureCategory.FIXED_ARRAY
        assert classified.abi == "wchar_t"
        assert classified.array_size == 260

    def _buffer_db(self, attribute_args):
        db = MetadataDatabase()
        outer = db.add_type("Test", "PATH", TypeKind.STRUCT)
        db.add_type("Test", "_chars_e__FixedBuffer", TypeKind.STRUCT, enclosing=outer,
                    fields=[FieldDef("FixedElementField", TypeSig(element=ElementType.CHAR))])
        attributes = []
        if attribute_args is not None:
            attributes.append(CustomAttribute(*FIXED_BUFFER_ATTRIBUTE, attribute_args))
        field = FieldDef("chars", TypeSig(type_ref=TypeRef("Test", "PATH/_chars_e__FixedBuffer")),
                         attributes=attributes)
        db.definition(outer).fields.append(field)
        return db, field

    def test_fixed_buffer_wrong_argument_count(self):
        db, field = self._buffer_db((TypeSig(element=ElementType.CHAR),))

        with pytest.raises(MalformedAttributeError, match="expects 2 arguments") as exc_info:
            SignatureClassifier(db).classify_field(field, "Test")
        assert exc_info.value.attribute == "FixedBufferAttribute"
        assert exc_info.value.type_name == "Test.PATH/_chars_e__FixedBuffer"

    def test_fixed_buffer_missing_attribute(self):
        db, field = self._buffer_db(None)

        with pytest.raises(MalformedAttributeError, match="has no FixedBufferAttribute"):
            SignatureClassifier(db).classify_field(field, "Test")

    def test_fixed_buffer_non_integer_length(self):
        db, field = self._buffer_db((TypeSig(element=ElementType.CHAR), "260"))

        with pytest.raises(MalformedAttributeError, match="must be an integer"):
            SignatureClassifier(db).classify_field(field, "Test")

    def test_union_member(self):
        db = parse_metadata_string("""
<metadata>
    <namespace name="Test">
        <struct name="VARIANT">
            <union name="_Anonymous_e__Union">
                <field name="i" type="I4"/>
            </union>
            <field name="Anonymous" type="_Anonymous_e__Union"/>
            <field name="kind" type="U2"/>
        </struct>
    </namespace>
</metadata>
""")
        entry = db.find_required("Test", "VARIANT")
        classifier = SignatureClassifier(db)

        assert classifier.is_union_member(entry.fields[0])
        assert not classifier.is_union_member(entry.fields[1])
        with pytest.raises(UnsupportedLayoutError):
            classifier.classify_field(entry.fields[0], "Test")


class TestFormatConstant:
    """Test C++ literal rendering of metadata constants"""

    def test_signed_and_unsigned(self):
        assert format_constant(Constant(ElementType.I4, -5)) == "-5"
        assert format_constant(Constant(ElementType.U4, 260)) == "260U"
        assert format_constant(Constant(ElementType.U8, 1)) == "1ULL"
        assert format_constant(Constant(ElementType.I8, 1)) == "1LL"

    def test_minimum_signed_values(self):
        assert format_constant(Constant(ElementType.I4, -2147483648)) == "(-2147483647 - 1)"
        assert format_constant(Constant(ElementType.I8, -(1 << 63))) == "(-9223372036854775807LL - 1)"

    def test_bool_string_float(self):
        assert format_constant(Constant(ElementType.BOOLEAN, True)) == "true"
        assert format_constant(Constant(ElementType.STRING, 'say "hi"\\')) == 'L"say \\"hi\\"\\\\"'
        assert format_constant(Constant(ElementType.R4, 1.5)) == "1.5f"
        assert format_constant(Constant(ElementType.R8, 0.25)) == "0.25"

    def test_non_finite_floats(self):
        """Test infinities and NaN are spelled through numeric_limits"""
        assert format_constant(Constant(ElementType.R4, float("inf"))) == "std::numeric_limits<float>::infinity()"
        assert format_constant(Constant(ElementType.R8, float("-inf"))) == "-std::numeric_limits<double>::infinity()"
        assert format_constant(Constant(ElementType.R8, float("nan"))) == "std::numeric_limits<double>::quiet_NaN()"
