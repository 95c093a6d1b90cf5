"""Directory-backed transcript storage."""

import logging
from pathlib import Path

from debatesim.errors import PersistenceFailure
from debatesim.models import Session, utcnow
from debatesim.transcript import decode, encode

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class TranscriptStore:
    """Stores opaque transcript bytes as files named by key."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not key or Path(key).name != key:
            raise PersistenceFailure(f"Invalid transcript key: {key!r}", key=key)
        return self.directory / key

    def write(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise PersistenceFailure(f"Failed to write transcript {key}: {exc}", key=key) from exc

    def read(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise PersistenceFailure(f"Failed to read transcript {key}: {exc}", key=key) from exc

    def list(self) -> list[str]:
        """Return transcript keys, sorted. A missing directory has no keys."""
        if not self.directory.exists():
            return []
        try:
            return sorted(p.name for p in self.directory.iterdir() if p.is_file() and p.suffix == _SUFFIX)
        except OSError as exc:
            raise PersistenceFailure(f"Failed to list transcripts: {exc}") from exc


def transcript_key(session: Session) -> str:
    millis = int(utcnow().timestamp() * 1000)
    return f"transcript_{session.id}_{millis}{_SUFFIX}"


def save_session(store: TranscriptStore, session: Session) -> str:
    """Encode and write a session. Returns the key it was stored under."""
    key = transcript_key(session)
    store.write(key, encode(session))
    logger.info("Transcript saved: %s", store.directory / key)
    return key


def load_session(store: TranscriptStore, key: str) -> Session:
    """Raises PersistenceFailure or MalformedTranscript."""
    return decode(store.read(key))
