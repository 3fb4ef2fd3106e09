"""
Настройки клиента и локальная история диалогов.

Всё хранится в JSON-файлах в $IAFRONT_HOME (по умолчанию ~/.iafront):
config.json - сервер и выбранная модель, <data_dir>/conversations.json - диалоги.
"""

import os
import logging
from pathlib import Path
from typing import Any, List, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from iafront_client.models import ClientConfig, StoredConversation

logger = logging.getLogger(__name__)

# LM Studio и совместимые серверы по умолчанию слушают порт 1234
DEFAULT_SERVER_URL = "http://localhost:1234"

HOME_ENV_VAR = "IAFRONT_HOME"
HOME_DIR_NAME = ".iafront"

_CONVERSATIONS_ADAPTER = TypeAdapter(List[StoredConversation])


def normalize_base_url(raw: str) -> str:
    """
    Нормализовать адрес сервера.

    Убирает пробелы и один завершающий '/', добавляет http:// если схема не указана.
    """
    url = raw.strip()
    if url.endswith("/"):
        url = url[:-1]
    if url.startswith(("http://", "https://")):
        return url
    return f"http://{url}"


def default_home() -> Path:
    """Директория данных: $IAFRONT_HOME или ~/.iafront."""
    env_home = os.environ.get(HOME_ENV_VAR)
    return Path(env_home) if env_home else Path.home() / HOME_DIR_NAME


class ConfigManager:
    """
    Настройки клиента и история диалогов на диске.

    Повреждённые файлы не приводят к ошибке: настройки сбрасываются
    к умолчаниям, история считается пустой (с записью в лог).
    """

    CONFIG_FILE_NAME = "config.json"
    HISTORY_FILE_NAME = "conversations.json"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Args:
            config_dir: Директория настроек (по умолчанию $IAFRONT_HOME или ~/.iafront)
        """
        self.config_dir = Path(config_dir) if config_dir is not None else default_home()
        self.config_file = self.config_dir / self.CONFIG_FILE_NAME
        self._config: Optional[ClientConfig] = None

    # ===== SETTINGS =====

    def load(self) -> ClientConfig:
        """Прочитать настройки (один раз за время жизни менеджера)."""
        if self._config is None:
            self._config = self._read_config()
        return self._config

    def _read_config(self) -> ClientConfig:
        if not self.config_file.exists():
            return ClientConfig(server_url=DEFAULT_SERVER_URL)
        try:
            return ClientConfig.model_validate_json(self.config_file.read_text(encoding="utf-8"))
        except (PydanticValidationError, ValueError) as e:
            logger.warning(f"Corrupted config file {self.config_file}, using defaults: {e}")
            return ClientConfig(server_url=DEFAULT_SERVER_URL)

    def save(self, config: Optional[ClientConfig] = None) -> None:
        """Записать настройки; без аргумента записываются текущие."""
        if config is not None:
            self._config = config
        if self._config is None:
            return
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(self._config.model_dump_json(indent=2), encoding="utf-8")

    def get_config(self) -> ClientConfig:
        return self.load()

    def _update(self, **changes: Any) -> ClientConfig:
        config = self.load().model_copy(update=changes)
        self.save(config)
        return config

    def set_server_url(self, url: str) -> str:
        """
        Сменить сервер моделей. Выбранная модель сбрасывается.

        Returns:
            Нормализованный URL
        """
        config = self._update(server_url=normalize_base_url(url), selected_model=None)
        logger.info(f"Server set to {config.server_url}")
        return config.server_url

    def set_selected_model(self, model_id: Optional[str]) -> None:
        self._update(selected_model=model_id)

    def get_selected_model(self) -> Optional[str]:
        return self.load().selected_model

    def set_data_dir(self, path: Optional[str]) -> None:
        """Папка для истории диалогов; None - папка по умолчанию."""
        self._update(data_dir=path)

    def get_data_dir(self) -> Path:
        """Папка для истории диалогов (создаётся при первом обращении)."""
        data_dir = self.load().data_dir
        path = Path(data_dir) if data_dir else self.config_dir / "data"
        path.mkdir(parents=True, exist_ok=True)
        return path

    # ===== HISTORY =====

    @property
    def history_file(self) -> Path:
        return self.get_data_dir() / self.HISTORY_FILE_NAME

    def load_conversations(self) -> List[StoredConversation]:
        """Диалоги из истории; пустой список если файла нет или он повреждён."""
        history_file = self.history_file
        if not history_file.exists():
            return []
        try:
            return _CONVERSATIONS_ADAPTER.validate_json(history_file.read_bytes())
        except PydanticValidationError as e:
            logger.error(f"Error loading conversations from {history_file}: {e}")
            return []

    def save_conversations(self, conversations: List[StoredConversation]) -> None:
        """Перезаписать историю целиком."""
        data = _CONVERSATIONS_ADAPTER.dump_json(conversations, indent=2)
        self.history_file.write_bytes(data)
        logger.debug(f"Saved {len(conversations)} conversations")


_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_dir: Optional[Path] = None) -> ConfigManager:
    """Общий для процесса менеджер; пересоздаётся, если передана директория."""
    global _config_manager

    if _config_manager is None or config_dir is not None:
        _config_manager = ConfigManager(config_dir)

    return _config_manager
