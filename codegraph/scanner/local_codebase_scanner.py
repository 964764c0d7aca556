import os
from pathlib import Path
from typing import List, Dict, Optional, Iterator
from concurrent.futures import ThreadPoolExecutor

from ..config import settings
from ..types import CodeFile, FileType
from ..utils.logger import app_logger

IGNORED_DIRS = {
    'node_modules', 'venv', 'env', '__pycache__', 'build', 'dist', 'coverage', 'site-packages',
}

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    '.js': 'javascript',
    '.jsx': 'javascript',
    '.mjs': 'javascript',
    '.cjs': 'javascript',
    '.ts': 'typescript',
    '.tsx': 'typescript',
    '.py': 'python',
    '.json': 'json',
    '.md': 'markdown',
}

FILE_TYPE_BY_EXTENSION: Dict[str, FileType] = {
    **{ext: FileType.CODE for ext in ('.py', '.js', '.ts', '.mjs', '.cjs')},
    **{ext: FileType.MARKUP for ext in ('.jsx', '.tsx', '.vue', '.html')},
    **{ext: FileType.DOCUMENTATION for ext in ('.md', '.txt', '.rst')},
    **{ext: FileType.CONFIGURATION for ext in ('.json', '.yaml', '.yml', '.toml')},
}


class LocalCodebaseScanner:
    """Collects source files under a root directory for structure extraction."""

    def __init__(self, root_path: Optional[str] = None, max_files: Optional[int] = None):
        self.root_path = Path(root_path).resolve() if root_path else Path.cwd().resolve()
        self.extensions = {ext.lower() for ext in settings.supported_extensions_list}
        self.size_limit = settings.max_file_size_mb * 1024 * 1024
        self.max_files = settings.max_scan_files if max_files is None else max_files
        self.logger = app_logger.bind(component="scanner")

    def scan_directory(self) -> List[CodeFile]:
        """Return the matching files in walk order, up to ``max_files``."""
        self.logger.info(f"Scanning directory: {self.root_path}")

        found: List[CodeFile] = []
        for code_file in self._walk_directory():
            if len(found) == self.max_files:
                self.logger.warning(f"File cap of {self.max_files} reached, ignoring the rest of {self.root_path}")
                break
            found.append(code_file)

        self.logger.info(f"Found {len(found)} source files")
        return found

    def _walk_directory(self) -> Iterator[CodeFile]:
        def report(error: OSError):
            self.logger.warning(f"Skipping unreadable directory: {error}")

        for root, dirs, files in os.walk(self.root_path, onerror=report):
            # Pruned in place so os.walk never descends into them
            dirs[:] = sorted(d for d in dirs if not d.startswith('.') and d not in IGNORED_DIRS)

            for file_name in sorted(files):
                code_file = self._create_code_file(Path(root) / file_name)
                if code_file is not None:
                    yield code_file

    def _create_code_file(self, file_path: Path) -> Optional[CodeFile]:
        """Describe a file, or return None when it is filtered out or unreadable."""
        extension = file_path.suffix.lower()
        if extension not in self.extensions:
            return None

        try:
            stat = file_path.stat()
        except OSError as e:
            self.logger.warning(f"Cannot stat {file_path}: {e}")
            return None

        if stat.st_size > self.size_limit:
            self.logger.warning(f"Skipping large file: {file_path} ({stat.st_size} bytes)")
            return None

        return CodeFile(
            path=file_path.relative_to(self.root_path).as_posix(),
            absolute_path=str(file_path.resolve()),
            file_type=FILE_TYPE_BY_EXTENSION.get(extension, FileType.UNKNOWN),
            language=self.detect_language(extension),
            size=stat.st_size,
            last_modified=stat.st_mtime,
        )

    @staticmethod
    def detect_language(extension: str) -> str:
        return LANGUAGE_BY_EXTENSION.get(extension.lower(), 'text')

    def load_file_content(self, code_file: CodeFile) -> Optional[str]:
        try:
            return Path(code_file.absolute_path).read_text(encoding='utf-8', errors='ignore')
        except OSError as e:
            self.logger.warning(f"Failed to read {code_file.path}: {e}")
            return None

    def load_files_content(self, code_files: List[CodeFile], max_workers: Optional[int] = None) -> List[CodeFile]:
        """Read file contents on a thread pool, dropping files that cannot be read.

        The returned list keeps the order of ``code_files``.
        """
        workers = max_workers or settings.scan_workers
        self.logger.info(f"Loading content for {len(code_files)} files with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            contents = list(executor.map(self.load_file_content, code_files))

        loaded = []
        for code_file, content in zip(code_files, contents):
            if content is not None:
                code_file.content = content
                loaded.append(code_file)

        dropped = len(code_files) - len(loaded)
        if dropped:
            self.logger.warning(f"Dropped {dropped} unreadable files")
        self.logger.info(f"Loaded content for {len(loaded)} files")
        return loaded
