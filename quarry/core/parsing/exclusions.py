"""
Centralized exclusion patterns for listing and reference scanning.

Single source of truth for all exclude patterns across languages.
Extensible and accessible for configuration.

A pattern ending in ``/*`` excludes everything below that directory,
at any depth.

Usage:
    from quarry.core.parsing.exclusions import ExclusionConfig

    exclusions = ExclusionConfig()
    exclusions.is_excluded("node_modules/react/index.js", "javascript")  # True

    # Add custom patterns
    exclusions.add_common('**/generated/*')
    exclusions.add_language('python', '**/my_fixtures/*')

    # Reset to defaults
    exclusions.reset()
"""

from typing import Any, Dict, List, Optional, Set

from ..globbing import compile_glob


class ExclusionConfig:
    """
    Exclude patterns for one service instance.

    Manages:
    - Common patterns applied to all languages
    - Language-specific patterns
    - Test file patterns, excluded unless tests are included
    """

    # =========================================================================
    # Default Patterns
    # =========================================================================

    # Patterns applied to ALL languages
    DEFAULT_COMMON: List[str] = [
        # Version control
        '**/.git/*',
        '**/.svn/*',
        '**/.hg/*',

        # Our own state
        '**/.quarry/*',

        # IDE/Editor
        '**/.idea/*',
        '**/.vscode/*',

        # Build artifacts
        '**/build/*',
        '**/dist/*',

        # Coverage/reports
        '**/coverage/*',
        '**/htmlcov/*',
    ]

    # Language-specific default patterns
    DEFAULT_LANGUAGE: Dict[str, List[str]] = {
        'python': [
            '**/__pycache__/*',
            '**/.venv/*',
            '**/venv/*',
            '**/site-packages/*',
            '**/.tox/*',
            '**/.nox/*',
            '**/.pytest_cache/*',
            '**/.mypy_cache/*',
            '**/*.egg-info/*',
        ],
        'rust': [
            '**/target/*',
        ],
        'javascript': [
            '**/node_modules/*',
            '**/bower_components/*',
            '**/*.min.js',
            '**/*.bundle.js',
            '**/vendor/*',
        ],
        'typescript': [
            '**/node_modules/*',
            '**/.next/*',
            '**/*.d.ts',
            '**/.turbo/*',
        ],
        'tsx': [
            '**/node_modules/*',
            '**/.next/*',
        ],
    }

    # Test patterns (separate for easy toggling)
    DEFAULT_TEST_PATTERNS: Dict[str, List[str]] = {
        'python': [
            '**/test_*.py',
            '**/*_test.py',
            '**/tests/*',
            '**/conftest.py',
        ],
        'rust': [
            '**/tests/*',
            '**/benches/*',
        ],
        'javascript': [
            '**/*.test.js',
            '**/*.spec.js',
            '**/__tests__/*',
        ],
        'typescript': [
            '**/*.test.ts',
            '**/*.spec.ts',
            '**/__tests__/*',
        ],
        'tsx': [
            '**/*.test.tsx',
            '**/*.spec.tsx',
            '**/__tests__/*',
        ],
    }

    def __init__(self, include_tests: bool = False, extra: Optional[List[str]] = None):
        """
        Args:
            include_tests: Whether test files are scanned
            extra: Additional common patterns (from configuration)
        """
        self._common_patterns: List[str] = []
        self._language_patterns: Dict[str, List[str]] = {}
        self._include_tests = False
        self.reset()
        self._include_tests = include_tests
        for pattern in extra or []:
            self.add_common(pattern)

    def reset(self) -> None:
        """Reset to default patterns."""
        self._common_patterns = list(self.DEFAULT_COMMON)
        self._language_patterns = {
            lang: list(patterns)
            for lang, patterns in self.DEFAULT_LANGUAGE.items()
        }
        self._include_tests = False

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_common_patterns(self) -> List[str]:
        """Get patterns applied to all languages."""
        return list(self._common_patterns)

    def get_language_patterns(self, language: str) -> List[str]:
        """Get patterns specific to a language."""
        return list(self._language_patterns.get(language, []))

    def get_patterns(self, language: Optional[str] = None, include_tests: Optional[bool] = None) -> List[str]:
        """
        Get all exclude patterns for a language.

        Args:
            language: Language name (e.g., 'python', 'rust'); None for
                common patterns only
            include_tests: Override for whether to exclude tests.
                          If None, uses the instance setting.

        Returns:
            Combined, sorted list of exclude patterns
        """
        patterns: Set[str] = set(self._common_patterns)

        if language is not None:
            patterns.update(self._language_patterns.get(language, []))

            should_exclude_tests = not (
                include_tests if include_tests is not None else self._include_tests
            )
            if should_exclude_tests:
                patterns.update(self.DEFAULT_TEST_PATTERNS.get(language, []))

        return sorted(patterns)

    def get_all_patterns(self, include_tests: Optional[bool] = None) -> List[str]:
        """
        Patterns of every configured language combined.

        For directory walks, which do not resolve a language per path.
        """
        patterns: Set[str] = set(self._common_patterns)
        for language in self._language_patterns:
            patterns.update(self.get_patterns(language, include_tests))
        return sorted(patterns)

    def is_excluded(self, path: str, language: Optional[str] = None) -> bool:
        """Check a repository-relative path against the patterns of its language."""
        return any(_matches(pattern, path) for pattern in self.get_patterns(language))

    def is_excluded_anywhere(self, path: str) -> bool:
        """Check a path against the patterns of every language."""
        return any(_matches(pattern, path) for pattern in self.get_all_patterns())

    def is_pruned_dir(self, path: str) -> bool:
        """True if a directory pattern of any language covers the directory ``path``."""
        return any(
            compile_glob(pattern[:-2]).match(path) is not None
            for pattern in self.get_all_patterns()
            if pattern.endswith("/*")
        )

    # =========================================================================
    # Modification Methods
    # =========================================================================

    def add_common(self, pattern: str) -> None:
        """Add a pattern to common exclusions."""
        if pattern not in self._common_patterns:
            self._common_patterns.append(pattern)

    def add_language(self, language: str, pattern: str) -> None:
        """Add a pattern to language-specific exclusions."""
        patterns = self._language_patterns.setdefault(language, [])
        if pattern not in patterns:
            patterns.append(pattern)

    def remove_common(self, pattern: str) -> bool:
        """Remove a pattern from common exclusions. Returns True if removed."""
        if pattern in self._common_patterns:
            self._common_patterns.remove(pattern)
            return True
        return False

    def set_include_tests(self, include: bool) -> None:
        """Set whether test files should be scanned."""
        self._include_tests = include

    def include_tests_enabled(self) -> bool:
        return self._include_tests

    def summary(self) -> Dict[str, Any]:
        """Get summary of current configuration."""
        return {
            'common_count': len(self._common_patterns),
            'languages': {
                lang: len(patterns)
                for lang, patterns in self._language_patterns.items()
            },
            'include_tests': self._include_tests,
        }


def _matches(pattern: str, path: str) -> bool:
    if pattern.endswith("/*"):
        # Directory pattern: anything below it
        pattern = pattern[:-1] + "**"
    return compile_glob(pattern).match(path) is not None
