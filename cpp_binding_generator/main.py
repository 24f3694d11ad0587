#!/usr/bin/env python3
"""
CLI entry point for C++ bindings generator
Generates layered C++ bindings (ABI, declarations, consumption layer) from API metadata
"""

import argparse
import sys
import traceback
from pathlib import Path

import clang.cindex

from cpp_binding_generator.config import parse_config_file
from cpp_binding_generator.errors import BindingGenerationError
from cpp_binding_generator.generator import CppBindingsGenerator
from cpp_binding_generator.metadata_loader import load_metadata
from cpp_binding_generator.verify import HeaderVerifier


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate C++ bindings from API metadata descriptions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --config bindings.xml --output include
  %(prog)s -C config.xml -o generated --verify
        """
    )

    parser.add_argument(
        "-C", "--config",
        metavar="CONFIG_FILE",
        required=True,
        help="XML configuration file specifying bindings to generate"
    )

    parser.add_argument(
        "-o", "--output",
        metavar="DIRECTORY",
        required=True,
        help="Output directory for generated headers"
    )

    parser.add_argument(
        "--verify",
        action="store_true",
        help="Parse the generated header with libclang and fail on errors"
    )

    parser.add_argument(
        "--clang-path",
        metavar="PATH",
        help="Path to libclang library (if not in default location)"
    )
    return parser


def main(argv=None):
    args = build_argument_parser().parse_args(argv)

    try:
        config = parse_config_file(args.config)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error reading config file: {e}", file=sys.stderr)
        sys.exit(1)

    if not config.metadata_files:
        print("Error: No metadata files found in config file", file=sys.stderr)
        sys.exit(1)

    # Set clang library path if provided
    if args.clang_path:
        clang.cindex.Config.set_library_path(args.clang_path)

    try:
        database = load_metadata(config.metadata_files)
        generator = CppBindingsGenerator(database, root_interface=config.root_interface)

        for pattern, is_regex in config.removals:
            generator.add_removal(pattern, is_regex)
        for pattern, is_regex in config.flag_enums:
            generator.add_flag_enum(pattern, is_regex)

        files = generator.generate_namespaces(config.namespaces, output=args.output, header_name=config.header)

        if args.verify:
            header_path = Path(args.output) / config.header
            warnings = HeaderVerifier(include_dirs=[args.output]).verify(files[config.header], filename=str(header_path))
            for warning in warnings:
                print(f"Warning: {warning}", file=sys.stderr)
            print(f"Verified: {header_path}")
    except (BindingGenerationError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
