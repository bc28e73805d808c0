from __future__ import annotations
import logging
import os
import platform
import shutil
import subprocess  # nosec B404
import sys
from pathlib import Path
from typing import Optional

from .base import Information, Provider

logger = logging.getLogger("microbench.environment")


class GitProvider(Provider):
    """Reports the branch and commit of the git checkout holding ``cwd``."""
    name = "vcs"

    def __init__(self, cwd: Optional[str | Path] = None, timeout: float = 5.0):
        self.cwd = Path(cwd) if cwd else Path.cwd()
        self.timeout = timeout

    def _git(self, *args: str) -> Optional[str]:
        try:
            completed = subprocess.run(  # nosec B603 B607
                ["git", "-C", str(self.cwd), *args],
                check=False,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"git {' '.join(args)} failed: {e}")
            return None
        if completed.returncode != 0:
            return None
        return completed.stdout.strip() or None

    def is_applicable(self) -> bool:
        return shutil.which("git") is not None and self._git("rev-parse", "--is-inside-work-tree") == "true"

    def get_information(self) -> Information:
        branch = self._git("rev-parse", "--abbrev-ref", "HEAD")
        return Information(
            self.name,
            {
                "system": "git",
                # detached checkouts report "HEAD"
                "branch": branch if branch != "HEAD" else None,
                "version": self._git("rev-parse", "HEAD"),
            },
        )


class UnameProvider(Provider):
    name = "uname"

    def get_information(self) -> Information:
        uname = platform.uname()
        return Information(
            self.name,
            {
                "os": uname.system,
                "host": uname.node,
                "release": uname.release,
                "version": uname.version,
                "machine": uname.machine,
            },
        )


class PythonProvider(Provider):
    name = "python"

    def get_information(self) -> Information:
        return Information(
            self.name,
            {
                "version": platform.python_version(),
                "implementation": platform.python_implementation(),
                "executable": sys.executable,
                "cpu_count": os.cpu_count(),
            },
        )
