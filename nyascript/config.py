"""
Configuration for the NyaScript compiler and runtime.

Author: xwest
"""

import os
from dataclasses import dataclass


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class CompilerOptions:
    """Options for one compile call."""
    # Abort on the first parse error instead of recovering
    strict: bool = False
    # Shown in source locations
    filename: str = "<script>"

    @classmethod
    def from_env(cls, filename: str = "<script>") -> 'CompilerOptions':
        """Build options from the environment (`NYAS_STRICT`)."""
        strict = os.environ.get("NYAS_STRICT", "").strip().lower() in _TRUTHY
        return cls(strict=strict, filename=filename)


@dataclass
class RuntimeOptions:
    """Options for the interpreter."""
    # Print "Script exit with code N" after a script run from the command line
    echo_exit_code: bool = True
    # Nested calls allowed before RecursionDepthError
    max_call_depth: int = 900
