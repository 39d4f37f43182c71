import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Optional

from app.config.settings import settings
from app.modules.notifications.schemas import NotificationState

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class NotificationStateStore:
    """Per-user notification_states_<user_id>.json holding read/deleted flags by notification id"""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.notification_state_dir)

    def path_for(self, user_id: str) -> Path:
        return self.base_dir / f"notification_states_{_UNSAFE_CHARS.sub('_', user_id)}.json"

    def load(self, user_id: str) -> Dict[str, NotificationState]:
        path = self.path_for(user_id)
        if not path.exists():
            return {}
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return {key: NotificationState(**value) for key, value in raw.items()}
        except Exception as e:
            # A corrupt overlay only costs read/deleted flags
            logger.error("Error loading notification states for %s: %s", user_id, e)
            return {}

    def save(self, user_id: str, states: Dict[str, NotificationState]) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        payload = {key: state.model_dump() for key, state in states.items()}
        fd, tmp_path = tempfile.mkstemp(dir=self.base_dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh)
            os.replace(tmp_path, self.path_for(user_id))
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def set_state(self, user_id: str, notification_ids: Iterable[str], is_read: bool, is_deleted: bool) -> int:
        """Overwrite the flags of the given ids; returns how many were written"""
        states = self.load(user_id)
        count = 0
        for notification_id in notification_ids:
            states[notification_id] = NotificationState(is_read=is_read, is_deleted=is_deleted)
            count += 1
        if count:
            self.save(user_id, states)
        return count
