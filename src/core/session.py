"""
Bearer token persistence between script runs.
"""

from pathlib import Path

from core.config import API_TOKEN, TOKEN_FILE


class TokenStore:
    """Reads, writes and clears the session token file."""

    def __init__(self, path: Path = TOKEN_FILE):
        self.path = path

    def load(self) -> str | None:
        """Token from the file, falling back to CALENDAR_API_TOKEN."""
        if self.path.exists():
            token = self.path.read_text().strip()
            if token:
                return token
        return API_TOKEN or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
