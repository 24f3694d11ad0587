"""
Syntax check of generated headers with libclang
"""

import subprocess

import clang.cindex

from .errors import VerificationError


def system_include_dirs() -> list[str]:
    """Ask the clang driver for its C++ system include search path"""
    paths = []
    try:
        result = subprocess.run(
            ['clang', '-E', '-v', '-x', 'c++', '-'],
            input=b'',
            capture_output=True,
            text=False,
            timeout=2
        )
        stderr = result.stderr.decode('utf-8', errors='ignore')
        in_includes = False
        for line in stderr.split('\n'):
            if '#include <...> search starts here:' in line:
                in_includes = True
                continue
            if in_includes:
                if line.startswith('End of search list'):
                    break
                # Extract path from line like " /usr/include"
                path = line.strip()
                if path and path.startswith('/'):
                    paths.append(path)
    except (OSError, subprocess.SubprocessError):
        # Fallback to common paths if clang query fails
        paths = ['/usr/local/include', '/usr/include']
    return paths


class HeaderVerifier:
    """Parses generated C++ with libclang and reports errors"""

    def __init__(self, include_dirs: list[str] | None = None, use_system_includes: bool = True):
        self.include_dirs = list(include_dirs or [])
        self.use_system_includes = use_system_includes

    def clang_args(self) -> list[str]:
        args = ['-x', 'c++', '-std=c++17']
        for include_dir in self.include_dirs:
            args.append(f'-I{include_dir}')
        if self.use_system_includes:
            for include_dir in system_include_dirs():
                args.append(f'-isystem{include_dir}')
        return args

    def verify(self, source: str, filename: str = "generated.h") -> list[str]:
        """Parse source and return its warnings; raise VerificationError on errors"""
        index = clang.cindex.Index.create()
        tu = index.parse(filename, args=self.clang_args(), unsaved_files=[(filename, source)])

        errors = []
        warnings = []
        for diag in tu.diagnostics:
            message = f"{diag.location.line}:{diag.location.column}: {diag.spelling}"
            if diag.severity >= clang.cindex.Diagnostic.Error:
                errors.append(message)
            elif diag.severity >= clang.cindex.Diagnostic.Warning:
                warnings.append(message)

        if errors:
            raise VerificationError(filename, errors)
        return warnings

    def verify_file(self, path) -> list[str]:
        with open(path) as f:
            return self.verify(f.read(), filename=str(path))
