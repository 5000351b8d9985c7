"""
Local mirror of what the browser keeps between visits: the device id, the
registered profile, the contact list and the offline SOS queue.
Each value is stored as JSON under a fixed key in a single file; a missing or
unreadable value reads as empty.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "safeher_device_id"
DEVICE_INFO_KEY = "safeher_device_info"
CONTACTS_CACHE_KEY = "safeher_contacts_cache"
OFFLINE_QUEUE_KEY = "safeher_offline_queue"


class LocalCache:
    def __init__(self, path: str | Path = "~/.safeher/cache.json"):
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)

    # Device ---------------------------------------------------------------
    def get_or_create_device_id(self) -> str:
        device_id = self.get(DEVICE_ID_KEY)
        if not device_id:
            device_id = f"device_{uuid4().hex[:21]}"
            self.set(DEVICE_ID_KEY, device_id)
        return device_id

    def get_device_id(self) -> Optional[str]:
        return self.get(DEVICE_ID_KEY)

    def clear_device_id(self) -> None:
        self.remove(DEVICE_ID_KEY)

    def is_device_registered(self) -> bool:
        return bool(self.get(DEVICE_INFO_KEY))

    def cache_device_info(self, info: Dict[str, Any]) -> None:
        self.set(DEVICE_INFO_KEY, info)

    def get_cached_device_info(self) -> Optional[Dict[str, Any]]:
        info = self.get(DEVICE_INFO_KEY)
        return info if isinstance(info, dict) else None

    def clear_device_info(self) -> None:
        self.remove(DEVICE_INFO_KEY)

    # Contacts -------------------------------------------------------------
    def cache_contacts(self, contacts: List[Dict[str, Any]]) -> None:
        self.set(CONTACTS_CACHE_KEY, contacts)

    def get_cached_contacts(self) -> List[Dict[str, Any]]:
        contacts = self.get(CONTACTS_CACHE_KEY, [])
        return contacts if isinstance(contacts, list) else []

    def add_contact_to_cache(self, contact: Dict[str, Any]) -> None:
        contacts = self.get_cached_contacts()
        if not any(c.get("id") == contact.get("id") for c in contacts):
            contacts.append(contact)
            self.cache_contacts(contacts)

    def remove_contact_from_cache(self, contact_id: int) -> None:
        self.cache_contacts([c for c in self.get_cached_contacts() if c.get("id") != contact_id])

    def clear_contacts_cache(self) -> None:
        self.remove(CONTACTS_CACHE_KEY)
