"""Language profiles for logical chunking.

This package provides one profile per language family with:
- base: Unit, LanguageProfile, IdentityProfile
- python: PythonProfile
- brace: BraceProfile, BraceDialect and one dialect per brace language

Profiles are selected by a Language tag inferred from the file path.
"""

from enum import Enum
from pathlib import PurePosixPath

from gitbahn.split.profiles.base import IdentityProfile, LanguageProfile, Unit
from gitbahn.split.profiles.brace import (
    C_FAMILY,
    CPP,
    CSHARP,
    GO,
    JAVA,
    JAVASCRIPT,
    KOTLIN,
    PHP,
    RUST,
    SCALA,
    SWIFT,
    TSX,
    TYPESCRIPT,
    BraceDialect,
    BraceProfile,
)
from gitbahn.split.profiles.python import PythonProfile


class Language(str, Enum):
    """Recognised source languages."""

    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    TSX = "tsx"
    JAVA = "java"
    KOTLIN = "kotlin"
    CSHARP = "csharp"
    SCALA = "scala"
    C = "c"
    CPP = "cpp"
    GO = "go"
    RUST = "rust"
    SWIFT = "swift"
    PHP = "php"
    UNKNOWN = "unknown"


EXTENSIONS = {
    ".py": Language.PYTHON,
    ".pyi": Language.PYTHON,
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TSX,
    ".mts": Language.TYPESCRIPT,
    ".cts": Language.TYPESCRIPT,
    ".java": Language.JAVA,
    ".kt": Language.KOTLIN,
    ".kts": Language.KOTLIN,
    ".cs": Language.CSHARP,
    ".scala": Language.SCALA,
    ".sc": Language.SCALA,
    ".c": Language.C,
    ".h": Language.C,
    ".cc": Language.CPP,
    ".cpp": Language.CPP,
    ".cxx": Language.CPP,
    ".hh": Language.CPP,
    ".hpp": Language.CPP,
    ".hxx": Language.CPP,
    ".go": Language.GO,
    ".rs": Language.RUST,
    ".swift": Language.SWIFT,
    ".php": Language.PHP,
}

PROFILES: dict[Language, LanguageProfile] = {
    Language.PYTHON: PythonProfile(),
    Language.JAVASCRIPT: BraceProfile(JAVASCRIPT),
    Language.TYPESCRIPT: BraceProfile(TYPESCRIPT),
    Language.TSX: BraceProfile(TSX),
    Language.JAVA: BraceProfile(JAVA),
    Language.KOTLIN: BraceProfile(KOTLIN),
    Language.CSHARP: BraceProfile(CSHARP),
    Language.SCALA: BraceProfile(SCALA),
    Language.C: BraceProfile(C_FAMILY),
    Language.CPP: BraceProfile(CPP),
    Language.GO: BraceProfile(GO),
    Language.RUST: BraceProfile(RUST),
    Language.SWIFT: BraceProfile(SWIFT),
    Language.PHP: BraceProfile(PHP),
    Language.UNKNOWN: IdentityProfile(),
}

IDENTITY_PROFILE = PROFILES[Language.UNKNOWN]


def detect_language(path: str) -> Language:
    """Infer the language of a file from its extension."""
    return EXTENSIONS.get(PurePosixPath(path).suffix.lower(), Language.UNKNOWN)


def get_profile(language: Language) -> LanguageProfile:
    return PROFILES[language]


__all__ = [
    # Base
    "Unit",
    "LanguageProfile",
    "IdentityProfile",
    "IDENTITY_PROFILE",
    # Families
    "PythonProfile",
    "BraceProfile",
    "BraceDialect",
    # Selection
    "Language",
    "EXTENSIONS",
    "PROFILES",
    "detect_language",
    "get_profile",
]
