"""Client-side key/value persistence for cart and checkout state."""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CART_KEY = "cart"
CHECKOUT_DRAFT_KEY = "checkout_draft"
APPLIED_OFFER_KEY = "applied_offer"
CUSTOMER_EMAIL_KEY = "customer_email"
PENDING_PAYMENT_KEY = "pending_payment"


class LocalStore(ABC):
    """Abstract JSON key/value store that survives reloads."""

    @abstractmethod
    def get_raw(self, key: str) -> Optional[str]:
        """Return the serialized value for a key, if any."""
        pass

    @abstractmethod
    def set_raw(self, key: str, value: str) -> None:
        """Store a serialized value."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""
        pass

    def get_json(self, key: str) -> Optional[Any]:
        """Load a JSON value; corrupt entries are treated as absent."""
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"[LOCAL STORE] Discarding corrupt value for key '{key}'")
            return None

    def set_json(self, key: str, value: Any) -> None:
        """Serialize and store a JSON value."""
        self.set_raw(key, json.dumps(value, default=str))


class InMemoryLocalStore(LocalStore):
    """Dictionary-backed store, used by tests and short-lived shells."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_raw(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileLocalStore(LocalStore):
    """Store persisted as a single JSON document on disk."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is None:
            if self.path.exists():
                try:
                    with open(self.path, "r", encoding="utf-8") as f:
                        loaded = json.load(f)
                    self._data = loaded if isinstance(loaded, dict) else {}
                except (OSError, json.JSONDecodeError) as e:
                    logger.error(
                        f"[LOCAL STORE] Could not read {self.path}: {type(e).__name__}: {e}"
                    )
                    self._data = {}
            else:
                self._data = {}
        return self._data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Temp file + rename: the document on disk is always complete
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get_raw(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_raw(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._flush()
