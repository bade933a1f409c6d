import os
import re
from pathlib import Path
from typing import List, Optional, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed

from ..config import settings
from ..types import SourceFile, FileRole
from ..utils.logger import app_logger


TEST_FILE_PATTERNS = [
    re.compile(r"\.test\."),
    re.compile(r"\.spec\."),
    re.compile(r"(^|/)__tests__/"),
]

CONFIG_FILE_PATTERNS = [
    re.compile(r"\.config\.(js|ts|cjs|mjs)$"),
    re.compile(r"(^|/)(webpack|vite|rollup|esbuild|parcel)\.", re.IGNORECASE),
    re.compile(r"(babel|jest|vitest|karma|mocha|eslint|prettier)\.config", re.IGNORECASE),
]

BACKEND_PATTERNS = [
    re.compile(r"server\.(ts|js)$"),
    re.compile(r"routes?\.(ts|js)$"),
    re.compile(r"api\.(ts|js)$"),
    re.compile(r"middleware\.(ts|js)$"),
    re.compile(r"controllers?\.(ts|js)$"),
    re.compile(r"/routes?/"),
    re.compile(r"/api/"),
    re.compile(r"/server/"),
    re.compile(r"/backend/"),
    re.compile(r"/middleware/"),
]

STORAGE_PATTERNS = [
    re.compile(r"(models?|schema|migrations?|seeds?|database|db)\.(ts|js)$", re.IGNORECASE),
    re.compile(r"/(models?|schema|migrations?|seeds?|database|db)/", re.IGNORECASE),
]

EXTENSION_LANGUAGES = {
    '.ts': 'typescript',
    '.tsx': 'tsx',
    '.js': 'javascript',
    '.jsx': 'jsx',
    '.mjs': 'javascript',
    '.cjs': 'javascript',
    '.sql': 'sql',
}


def _normalized(path: str) -> str:
    normalized = path.replace("\\", "/")
    return normalized if normalized.startswith("/") else f"/{normalized}"


def is_test_file(path: str) -> bool:
    """Check whether a path looks like a test file."""
    normalized = _normalized(path)
    return any(pattern.search(normalized) for pattern in TEST_FILE_PATTERNS)


def is_config_file(path: str) -> bool:
    """Check whether a path is build or tooling configuration."""
    normalized = _normalized(path)
    return any(pattern.search(normalized) for pattern in CONFIG_FILE_PATTERNS)


def classify_file_role(path: str) -> FileRole:
    """Classify a file as frontend, backend or storage by its path."""
    normalized = _normalized(path)
    if normalized.lower().endswith(".sql"):
        return FileRole.STORAGE
    if any(pattern.search(normalized) for pattern in BACKEND_PATTERNS):
        return FileRole.BACKEND
    if any(pattern.search(normalized) for pattern in STORAGE_PATTERNS):
        return FileRole.STORAGE
    return FileRole.FRONTEND


class LocalCodebaseScanner:
    """Scanner for local codebase analysis."""

    def __init__(self, root_path: Optional[str] = None, exclude_test_files: Optional[bool] = None):
        if root_path is None:
            self.root_path = Path.cwd().resolve()
        else:
            self.root_path = Path(root_path).resolve()

        self.supported_extensions = set(settings.supported_extensions_list)
        self.ignored_dirs = settings.ignored_dirs_set
        self.max_file_size = settings.max_file_size_bytes
        self.exclude_test_files = (
            settings.exclude_test_files if exclude_test_files is None else exclude_test_files
        )
        self.excluded_count = 0
        self.logger = app_logger.bind(component="scanner")

    def scan_directory(self) -> List[SourceFile]:
        """Scan directory and return list of source files."""
        self.logger.info(f"Scanning directory: {self.root_path}")

        if not self.root_path.is_dir():
            raise FileNotFoundError(f"Directory does not exist: {self.root_path}")

        self.excluded_count = 0
        all_files = sorted(self._walk_directory(), key=lambda f: f.path)

        self.logger.info(f"Found {len(all_files)} files to process ({self.excluded_count} excluded)")
        return all_files

    def _walk_directory(self) -> Iterator[SourceFile]:
        """Walk through directory and yield source files."""
        for root, dirs, files in os.walk(self.root_path):
            # Remove ignored directories
            dirs[:] = [d for d in dirs if d not in self.ignored_dirs]

            for file_name in files:
                file_path = Path(root) / file_name

                if self._should_include_file(file_path):
                    source_file = self._create_source_file(file_path)
                    if source_file:
                        yield source_file
                else:
                    self.excluded_count += 1

    def _should_include_file(self, file_path: Path) -> bool:
        """Check if file should be included in scan."""
        if file_path.suffix.lower() not in self.supported_extensions:
            return False

        relative = file_path.relative_to(self.root_path).as_posix()
        if self.exclude_test_files and is_test_file(relative):
            self.logger.debug(f"Skipping test file: {relative}")
            return False

        if is_config_file(relative):
            self.logger.debug(f"Skipping config file: {relative}")
            return False

        try:
            if file_path.stat().st_size > self.max_file_size:
                self.logger.warning(f"Skipping large file: {file_path}")
                return False
        except OSError:
            return False

        return True

    def _create_source_file(self, file_path: Path) -> Optional[SourceFile]:
        """Create SourceFile object from file path."""
        try:
            stat = file_path.stat()
        except OSError as e:
            self.logger.error(f"Error reading file metadata for {file_path}: {e}")
            return None

        relative_path = file_path.relative_to(self.root_path).as_posix()
        extension = file_path.suffix.lower()

        return SourceFile(
            path=relative_path,
            absolute_path=str(file_path.resolve()),
            extension=extension,
            role=classify_file_role(relative_path),
            language=EXTENSION_LANGUAGES.get(extension),
            size=stat.st_size,
            last_modified=stat.st_mtime,
            content=None  # Will be loaded later
        )

    def load_file_content(self, source_file: SourceFile) -> Optional[str]:
        """Load content of a source file."""
        try:
            with open(source_file.absolute_path, 'r', encoding='utf-8', errors='ignore') as f:
                return f.read()
        except OSError as e:
            self.logger.error(f"Error loading file {source_file.absolute_path}: {e}")
            return None

    def load_files_content(self, source_files: List[SourceFile], max_workers: Optional[int] = None) -> List[SourceFile]:
        """Load content for multiple files in parallel."""
        self.logger.info(f"Loading content for {len(source_files)} files")

        def load_content(file: SourceFile) -> SourceFile:
            file.content = self.load_file_content(file)
            return file

        with ThreadPoolExecutor(max_workers=max_workers or settings.max_workers) as executor:
            futures = [executor.submit(load_content, file) for file in source_files]

            for future in as_completed(futures):
                future.result()

        # Filter out files that couldn't be loaded
        loaded_files = [f for f in source_files if f.content is not None]
        self.logger.info(f"Successfully loaded content for {len(loaded_files)} files")

        return loaded_files
