import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from ..config import settings


def extract_repo_name(repo_url: str) -> str:
    """Extract the repository name from a repository URL or local path.

    ``https://github.com/owner/repo.git`` yields ``repo``; a local directory
    yields its own name.
    """
    if not repo_url or not repo_url.strip():
        raise ValueError("Repository URL cannot be empty")

    parsed = urlparse(repo_url.strip())
    if not parsed.scheme or len(parsed.scheme) == 1:
        # Local path (a single-letter scheme is a Windows drive)
        name = Path(repo_url.strip()).resolve().name
        if not name:
            raise ValueError(f"Invalid repository path: {repo_url}")
        return name

    if not parsed.netloc:
        raise ValueError(f"Invalid URL format: {repo_url}")

    path_parts = [part for part in parsed.path.split("/") if part]
    if len(path_parts) < 2:
        raise ValueError(
            "Invalid GitHub repository URL format. Expected format: https://github.com/owner/repo"
        )

    repo_name = path_parts[1]
    if repo_name.endswith(".git"):
        repo_name = repo_name[:-4]
    return repo_name


def _output_file(file_name: str, output_dir: Optional[str] = None) -> str:
    directory = output_dir or settings.output_dir
    if not os.path.isabs(directory) and not directory.startswith("."):
        directory = os.path.join(".", directory)
    return os.path.join(directory, file_name)



def generate_output_path(repo_url: str, output_dir: Optional[str] = None) -> str:
    """Build ``./graph-data-files/code2graph_<repo>.json``."""
    return _output_file(f"code2graph_{extract_repo_name(repo_url)}.json", output_dir)


def generate_dead_code_report_path(repo_url: str, output_dir: Optional[str] = None) -> str:
    """Build ``./graph-data-files/code2graph_<repo>-dead-code-report.json``."""
    return _output_file(f"code2graph_{extract_repo_name(repo_url)}-dead-code-report.json", output_dir)
