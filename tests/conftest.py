"""
Pytest configuration and fixtures
"""

import pytest

from cpp_binding_generator.metadata_loader import parse_metadata_string


FOUNDATION_METADATA = """
<metadata>
    <namespace name="Windows.Win32.Foundation">
        <enum name="FILE_ACCESS" type="U4" flags="true">
            <member name="READ" value="0x1"/>
            <member name="WRITE" value="0x2"/>
        </enum>
        <enum name="STATUS">
            <member name="OK" value="0"/>
            <member name="FAIL" value="-1"/>
        </enum>
        <struct name="RECT">
            <field name="topLeft" type="POINT"/>
            <field name="bottomRight" type="POINT"/>
        </struct>
        <struct name="POINT">
            <field name="x" type="I4"/>
            <field name="y" type="I4"/>
        </struct>
        <struct name="NODE">
            <field name="next" type="NODE" pointer="1"/>
            <field name="value" type="I4"/>
        </struct>
        <delegate name="CALLBACK">
            <return type="I4"/>
            <param name="context" type="Void" pointer="1"/>
        </delegate>
        <interface name="IUnknown" guid="00000000-0000-0000-C000-000000000046">
            <method name="AddRef"><return type="U4"/></method>
            <method name="Release"><return type="U4"/></method>
        </interface>
        <interface name="IStream" base="IUnknown" guid="0000000c-0000-0000-C000-000000000046">
            <method name="Read">
                <return type="I4"/>
                <param name="buffer" type="Void" pointer="1"/>
                <param name="size" type="U4"/>
            </method>
            <method name="Clone">
                <return type="I4"/>
                <param name="stream" type="IStream" pointer="2" direction="out"/>
            </method>
        </interface>
        <class name="Apis">
            <constant name="MAX_PATH" type="U4" value="260"/>
            <method name="CloseHandle">
                <return type="Boolean"/>
                <param name="handle" type="I"/>
            </method>
            <method name="OpenThing">
                <return type="I"/>
                <param name="offset" type="I8"/>
                <param name="access" type="FILE_ACCESS"/>
                <param name="handle" type="I" pointer="1" direction="out" free="CloseHandle"/>
            </method>
            <method name="CreateStream">
                <return type="IStream"/>
                <param name="source" type="IStream" pointer="1"/>
            </method>
        </class>
    </namespace>
</metadata>
"""


@pytest.fixture
def foundation_xml():
    """Metadata covering every declaration kind in one namespace"""
    return FOUNDATION_METADATA


@pytest.fixture
def foundation_db():
    return parse_metadata_string(FOUNDATION_METADATA)


@pytest.fixture
def foundation_file(tmp_path):
    """Write the foundation metadata to a temporary file"""
    path = tmp_path / "foundation.xml"
    path.write_text(FOUNDATION_METADATA)
    return path


@pytest.fixture
def config_file(tmp_path, foundation_file):
    """Create a config file that generates the foundation namespace"""
    path = tmp_path / "bindings.xml"
    path.write_text(f"""
<bindings header="foundation.h">
    <metadata file="{foundation_file.name}"/>
    <namespace name="Windows.Win32.Foundation"/>
</bindings>
""")
    return path


@pytest.fixture
def cyclic_db():
    """Two records embedding each other by value"""
    return parse_metadata_string("""
<metadata>
    <namespace name="Test">
        <struct name="A">
            <field name="b" type="B"/>
        </struct>
        <struct name="B">
            <field name="a" type="A"/>
        </struct>
    </namespace>
</metadata>
""")
