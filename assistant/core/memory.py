"""Persistent chat memory: one JSON document per username.

Records are read and rewritten whole. There is no locking, so two requests
updating the same user concurrently race and the last write wins.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from assistant.core.errors import InvalidInputError, StorageError
from assistant.core.models import UserRecord


logger = logging.getLogger("chatbot.store")

_FORBIDDEN_CHARS = ("/", "\\", "\x00")


class UserStore:
    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, username: str) -> Path:
        if not username or not username.strip():
            raise InvalidInputError("Username is required")
        if username in (".", "..") or any(ch in username for ch in _FORBIDDEN_CHARS):
            raise InvalidInputError(f"Invalid username: {username!r}")
        return self.data_dir / f"{username}.json"

    def load(self, username: str) -> UserRecord:
        path = self.path_for(username)
        if not path.exists():
            return UserRecord(username=username)

        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not read data for {username!r}: {exc}") from exc

        try:
            return UserRecord.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StorageError(f"Corrupt data file for {username!r}: {exc}") from exc

    def save(self, username: str, record: UserRecord) -> None:
        path = self.path_for(username)
        payload = json.dumps(record.model_dump(by_alias=True), ensure_ascii=False, indent=2)
        try:
            path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not write data for {username!r}: {exc}") from exc
        logger.debug("Saved %s chats for user=%s", len(record.chats), username)
