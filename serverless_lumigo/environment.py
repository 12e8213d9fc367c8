"""
Environment adapter.

File access and shell execution used by the plugin, rooted at the service
directory. Relative paths are resolved against that root so the plugin can
work with the paths users write in their service definition.
"""

import json
import os
import shutil
import subprocess
from typing import Optional

from .logging_utils import get_logger

logger = get_logger(__name__)


class Environment:
    """Filesystem and process access for one service directory."""

    def __init__(self, service_path: Optional[str] = None):
        """
        Args:
            service_path: Service root; defaults to the current directory
        """
        self.service_path = os.path.abspath(service_path or os.getcwd())

    def resolve(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.join(self.service_path, path)

    def path_exists(self, path: str) -> bool:
        return os.path.exists(self.resolve(path))

    def read_file(self, path: str, encoding: str = "utf8") -> str:
        with open(self.resolve(path), "r", encoding=encoding) as f:
            return f.read()

    def output_file(self, path: str, content: str) -> None:
        """Write content to path, creating parent directories as needed."""
        full_path = self.resolve(path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "w", encoding="utf8") as f:
            f.write(content)
        logger.debug("File written", path=full_path, size_bytes=len(content))

    def remove(self, path: str) -> None:
        """Remove a file or directory tree; a missing path is not an error."""
        full_path = self.resolve(path)
        if os.path.isdir(full_path) and not os.path.islink(full_path):
            shutil.rmtree(full_path)
        elif os.path.lexists(full_path):
            os.remove(full_path)
        logger.debug("Path removed", path=full_path)

    def exec_sync(self, command: str) -> str:
        """
        Run a shell command in the service directory and return its output.

        Raises:
            subprocess.CalledProcessError: If the command exits non-zero
        """
        logger.debug("Executing command", command=command, cwd=self.service_path)
        result = subprocess.run(
            command,
            shell=True,
            cwd=self.service_path,
            check=True,
            capture_output=True,
            text=True,
            encoding="utf8",
        )
        return result.stdout

    def has_dependency(self, package: str) -> bool:
        """
        Check whether package.json in the service root declares a dependency.

        Raises:
            OSError: If package.json cannot be read
            ValueError: If package.json is not valid JSON
        """
        manifest = json.loads(self.read_file("package.json"))
        dependencies = manifest.get("dependencies") or {}
        return package in dependencies
