import copy
import logging
import os
from pathlib import Path
from threading import Lock

import yaml
from dotenv import find_dotenv, load_dotenv
from yaml.loader import SafeLoader

from common.config.config_errors import ConfigFileNotFoundError, InvalidConfigError
from utils.common_helpers import get_configs_dir

BASE_VARIABLES = "variables_base.yml"

logger = logging.getLogger(__name__)


class Singleton(type):
    _instances = {}
    _lock: Lock = Lock()

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            with cls._lock:
                if cls not in cls._instances:
                    cls._instances[cls] = super(Singleton, cls).__call__(*args, **kwargs)
        return cls._instances[cls]


class ConfigManager(metaclass=Singleton):
    _path_configs = get_configs_dir()

    def __init__(self):
        load_dotenv(find_dotenv(usecwd=True))
        config_path = os.environ.get("CONFIG_FILE_PATH")
        config_file = os.environ.get("CONFIG_FILE")

        if not config_path and config_file:
            # ensure only one (1) trailing '.yml'
            config_file = config_file.replace(".yml", "")
            config_path = f"{ConfigManager._path_configs}/{config_file}.yml"

        if not config_path:
            logger.info(f"CONFIG_FILE not set. Using {BASE_VARIABLES} only")

        self._load_config(config_path)

    def _load_config(self, override_path) -> None:
        base_path = f"{ConfigManager._path_configs}/{BASE_VARIABLES}"
        self.config = self._read_yaml(base_path)
        self.config_path = base_path

        if override_path:
            override = self._read_yaml(override_path)
            # Read BASE 1st, Override 2nd; sections are merged key by key
            for section, values in override.items():
                if isinstance(values, dict) and isinstance(self.config.get(section), dict):
                    self.config[section].update(values)
                else:
                    self.config[section] = values
            self.config_path = override_path
        logger.debug(f"Loaded config {self.config_path}")

    @staticmethod
    def _read_yaml(path) -> dict:
        if not os.path.exists(path):
            raise ConfigFileNotFoundError(path)
        with open(path) as f:
            content = yaml.load(f, Loader=SafeLoader)
        if content is None:
            return {}
        if not isinstance(content, dict):
            raise InvalidConfigError(path, "top level must be a mapping of sections")
        return content

    @classmethod
    def get_config(cls) -> dict:
        instance = cls()
        return copy.deepcopy(instance.config)

    @classmethod
    def get_config_path(cls) -> str:
        instance = cls()
        return instance.config_path

    @classmethod
    def get_config_name(cls) -> str:
        instance = cls()
        return Path(instance.config_path).name

    @classmethod
    def reset(cls) -> None:
        """Drops the loaded config so the next access reads the files again"""
        with Singleton._lock:
            Singleton._instances.pop(cls, None)
