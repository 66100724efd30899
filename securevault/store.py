"""
In-memory credential store: the decrypted payload of a vault.
"""

import json
import uuid
import datetime
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional, Tuple

from . import config
from .errors import DuplicateEntry, EntryNotFound, FormatCorrupt


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@dataclass
class CredentialEntry:
    """Represents a single credential."""
    service: str
    secret: str
    username: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=_now)
    updated_at: str = ""

    def __post_init__(self):
        if not self.updated_at:
            self.updated_at = self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialEntry":
        """Create from dictionary."""
        return cls(**data)


class CredentialStore:
    """Mapping from service name to credential entry."""

    def __init__(self, entries: Optional[List[CredentialEntry]] = None):
        self._entries: Dict[str, CredentialEntry] = {}
        for entry in entries or []:
            if entry.service in self._entries:
                raise DuplicateEntry(entry.service)
            self._entries[entry.service] = entry

    def list(self) -> List[Tuple[str, Optional[str]]]:
        return [(e.service, e.username) for e in sorted(self._entries.values(), key=lambda e: e.service)]

    def get(self, service: str) -> CredentialEntry:
        try:
            return self._entries[service]
        except KeyError:
            raise EntryNotFound(service) from None

    def add(self, service: str, username: Optional[str], secret: str) -> CredentialEntry:
        if service in self._entries:
            raise DuplicateEntry(service)
        entry = CredentialEntry(service=service, username=username, secret=secret)
        self._entries[service] = entry
        return entry

    def put(self, service: str, username: Optional[str], secret: str) -> CredentialEntry:
        """Insert an entry, or overwrite username and secret of an existing one."""
        entry = self._entries.get(service)
        if entry is None:
            return self.add(service, username, secret)
        entry.username = username
        entry.secret = secret
        entry.updated_at = _now()
        return entry

    def update_secret(self, service: str, secret: str) -> CredentialEntry:
        entry = self.get(service)
        entry.secret = secret
        entry.updated_at = _now()
        return entry

    def delete(self, service: str) -> bool:
        return self._entries.pop(service, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, service: object) -> bool:
        return service in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CredentialStore):
            return NotImplemented
        return self._entries == other._entries

    def to_bytes(self) -> bytearray:
        """Serialize to UTF-8 JSON in a wipeable buffer."""
        data = {
            "version": config.STORE_FORMAT_VERSION,
            "entries": [e.to_dict() for e in self._entries.values()],
        }
        return bytearray(json.dumps(data).encode("utf-8"))

    @classmethod
    def from_bytes(cls, data: bytes) -> "CredentialStore":
        """
        Parse a serialized store.

        Raises:
            FormatCorrupt: If the payload is not a valid store.
        """
        try:
            payload = json.loads(bytes(data).decode("utf-8"))
            if payload["version"] != config.STORE_FORMAT_VERSION:
                raise FormatCorrupt("unsupported credential payload version")
            return cls([CredentialEntry.from_dict(e) for e in payload["entries"]])
        except (ValueError, KeyError, TypeError) as e:
            raise FormatCorrupt("credential payload is malformed") from e
        except DuplicateEntry as e:
            raise FormatCorrupt("credential payload is malformed") from e
