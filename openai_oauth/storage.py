"""Credential file storage for OpenAI OAuth"""

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from errors import StoreError
from .models import Credential

logger = logging.getLogger(__name__)


class CredentialFile:
    """Single-slot JSON credential record with owner-only permissions"""

    def __init__(self, token_file: str):
        self.token_path = Path(token_file)

    def _ensure_secure_directory(self) -> None:
        """Create parent directory with secure permissions"""
        parent_dir = self.token_path.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def load(self) -> Optional[Credential]:
        """Load the credential; None when the file is absent or unreadable"""
        if not self.token_path.exists():
            logger.debug(f"No credential file at {self.token_path}")
            return None

        try:
            data = json.loads(self.token_path.read_text())
            credential = Credential.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Ignoring unreadable credential file {self.token_path}: {e}")
            return None

        if not credential.access_token or not credential.refresh_token:
            logger.error(f"Ignoring incomplete credential file {self.token_path}")
            return None
        return credential

    def save(self, credential: Credential) -> None:
        """
        Replace the whole record atomically.

        The JSON is written to a temporary file in the same directory and
        moved over the old record, so readers never see a partial write.

        Raises:
            StoreError: on any I/O failure
        """
        tmp_path = None
        try:
            self._ensure_secure_directory()
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.token_path.parent),
                prefix=f".{self.token_path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w") as f:
                json.dump(credential.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            if platform.system() != "Windows":
                os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.token_path)
            tmp_path = None
        except OSError as e:
            raise StoreError(f"writing credentials: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        logger.debug(f"Saved credentials to {self.token_path}")
