"""Run provenance recorded next to the outputs.

A run is reproducible from (config, seed) only if the exact config, code
revision and numeric stack are known, so the metadata file carries all
three, plus SHA-256 digests of every output written.
"""

from __future__ import annotations

import hashlib
import logging
import platform
import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Mapping

import numpy as np
import scipy
import yaml

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).resolve().parent.parent


def sha256_file(path: str | Path, chunk_size: int = 1 << 16) -> str:
    h = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            h.update(chunk)
    return h.hexdigest()


def checksums(paths: Mapping[str, Path]) -> Dict[str, str]:
    """Digest of each named output file."""
    return {name: sha256_file(path) for name, path in paths.items()}


def config_digest(config_dict: Dict[str, Any]) -> str:
    """SHA-256 of the canonical (key-sorted) YAML form of a config dict."""
    text = yaml.safe_dump(config_dict, sort_keys=True)
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def git_revision(cwd: str | Path = _REPO_ROOT) -> str:
    """Commit hash of the source checkout, or 'unknown' outside git."""
    try:
        proc = subprocess.run(
            ['git', 'rev-parse', 'HEAD'],
            cwd=cwd, capture_output=True, text=True, timeout=5,
        )
    except (FileNotFoundError, NotADirectoryError, subprocess.TimeoutExpired):
        return 'unknown'
    return proc.stdout.strip() if proc.returncode == 0 else 'unknown'


def library_versions() -> Dict[str, str]:
    return {
        'python': platform.python_version(),
        'numpy': np.__version__,
        'scipy': scipy.__version__,
        'pyyaml': yaml.__version__,
    }


def run_provenance(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Provenance block for the run metadata file.

    Args:
        config_dict: Plain-dict form of the run configuration.

    Returns:
        Dict with the config digest, code revision and library versions.
    """
    return {
        'config_hash': config_digest(config_dict),
        'git_hash': git_revision(),
        'versions': library_versions(),
    }


@contextmanager
def timer(label: str = "") -> Generator[None, None, None]:
    """Log the wall time of the enclosed block at INFO."""
    start = time.perf_counter()
    yield
    logger.info("[%s] %.3fs", label or "elapsed", time.perf_counter() - start)
