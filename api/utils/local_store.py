"""
裝置端鍵值儲存

對應瀏覽器的 localStorage：以字串鍵存取字串值，沒有鎖，後寫入者勝出。
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """鍵值儲存介面"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """記憶體鍵值儲存，程序結束即消失"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileStore(KeyValueStore):
    """以單一 JSON 檔案保存的鍵值儲存，每次寫入都整檔覆寫"""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logger.error(f"讀取裝置儲存檔案失敗: {str(e)}")
            return {}

    def _save(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


class DeviceStore(KeyValueStore):
    """將鍵值加上裝置 ID 前綴，讓多個裝置共用同一個底層儲存"""

    def __init__(self, backend: KeyValueStore, device_id: str):
        self.backend = backend
        self.device_id = device_id

    def _key(self, key: str) -> str:
        return f"{self.device_id}:{key}"

    def get(self, key: str) -> Optional[str]:
        return self.backend.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self.backend.set(self._key(key), value)

    def delete(self, key: str) -> None:
        self.backend.delete(self._key(key))


class AuthStorageAdapter:
    """
    提供 Supabase Auth 客戶端使用的 get_item / set_item / remove_item 介面，
    讓 OAuth 的 code verifier 與登入階段保存在裝置儲存中
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_item(self, key: str) -> Optional[str]:
        return self.store.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.store.set(key, value)

    def remove_item(self, key: str) -> None:
        self.store.delete(key)
