"""Environment variable loading for FAQForge entrypoints.

Loads a ``.env`` file with python-dotenv before configuration is read, so
local runs can keep provider keys (Firecrawl, Tavily, ElevenLabs) and Google
Cloud settings out of the shell profile.

Usage in application entrypoints:

    from src.common.env import load_env
    load_env()

Usage in tests (conftest.py):

    from src.common.env import load_env
    load_env(verbose=False)

Shell variables win over ``.env`` values (``override=False``).
"""

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv as _load_dotenv

logger = logging.getLogger(__name__)


def find_project_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start_path`` (default: cwd) to the directory holding pyproject.toml or .git."""
    current = start_path or Path.cwd()

    for parent in [current, *current.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
        if (parent / ".git").exists():
            return parent

    return None


def find_env_file(filename: str = ".env") -> Optional[Path]:
    """Find ``filename`` in the working directory, then in the project root."""
    cwd_env = Path.cwd() / filename
    if cwd_env.exists():
        return cwd_env

    project_root = find_project_root()
    if project_root:
        root_env = project_root / filename
        if root_env.exists():
            return root_env

    return None


def load_env(
    env_file: Optional[str] = None,
    override: bool = False,
    verbose: bool = False,
) -> bool:
    """Load environment variables from a .env file.

    Args:
        env_file: Explicit path. If None, searches standard locations.
        override: If True, .env values override existing environment variables.
        verbose: If True, log which file is being loaded.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    dotenv_path = Path(env_file) if env_file else find_env_file()

    if dotenv_path is None or not dotenv_path.exists():
        if verbose:
            logger.info("No .env file found, using environment variables only")
        return False

    if verbose:
        logger.info("Loading environment file", extra={"path": str(dotenv_path)})

    _load_dotenv(dotenv_path=dotenv_path, override=override)
    return True
