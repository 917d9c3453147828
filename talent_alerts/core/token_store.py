"""OAuth token persistence for the ATS integration.

File shape: ``{"access_token", "refresh_token", "expires_at"}`` where
``expires_at`` is epoch milliseconds.
"""

import json
import logging
import os
import tempfile
import time
from pathlib import Path

from pydantic import BaseModel, ValidationError

from talent_alerts.core.errors import PersistenceError

logger = logging.getLogger(__name__)

# refresh this long before the upstream expiry
REFRESH_MARGIN_MS = 5 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class OAuthTokens(BaseModel):
    access_token: str
    refresh_token: str
    expires_at: int

    def needs_refresh(self, at_ms: int | None = None) -> bool:
        current = now_ms() if at_ms is None else at_ms
        return current >= self.expires_at - REFRESH_MARGIN_MS


class TokenStore:
    """Single-writer JSON file holding the current token pair."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> OAuthTokens | None:
        """Return the stored tokens, or None when missing or unreadable."""
        if not self._path.exists():
            logger.debug("Token file not found: %s", self._path)
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return OAuthTokens.model_validate(data)
        except (UnicodeDecodeError, json.JSONDecodeError, OSError, ValidationError) as e:
            logger.warning("Failed to load tokens from %s: %s", self._path, e)
            return None

    def save(self, tokens: OAuthTokens) -> None:
        write_json_atomic(self._path, tokens.model_dump())
        logger.info("Tokens saved to %s", self._path)

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            msg = f"Could not remove token file {self._path}: {e}"
            raise PersistenceError(msg) from e


def write_json_atomic(path: Path, data: object) -> None:
    """Pretty-print ``data`` to ``path`` via a temp file and atomic replace."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        msg = f"Could not write {path}: {e}"
        raise PersistenceError(msg) from e
