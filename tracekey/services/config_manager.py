"""配置管理器"""

import dataclasses
import os
from typing import Dict, Any, Optional

import yaml

from ..models.settings import Settings, ReportingSettings
from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """递归合并字典，override 中的值优先"""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、合并和验证"""

    def __init__(self, config_path: str, local_path: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_path: 基础配置文件路径
            local_path: 本地覆盖配置文件路径，文件不存在时忽略
        """
        self.config_path = config_path
        self.local_path = local_path
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def _read_yaml(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as file:
                data = yaml.safe_load(file)
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误 {path}: {e}")
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=path)
        except FileNotFoundError:
            raise ConfigError(f"配置文件不存在: {path}", ErrorCode.CONFIG_FILE_NOT_FOUND,
                              config_path=path)
        except PermissionError:
            raise ConfigError(f"没有权限读取配置文件: {path}", config_path=path)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError("配置文件根节点必须是字典类型", config_path=path)
        return data

    def load_raw_config(self) -> Dict[str, Any]:
        """
        读取并合并配置，不做验证

        Raises:
            ConfigError: 文件不存在或格式错误
        """
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        if not os.path.exists(self.config_path):
            self.logger.error(f"配置文件不存在: {self.config_path}")
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path)

        config = self._read_yaml(self.config_path)
        if not config:
            raise ConfigError("配置文件为空", config_path=self.config_path)

        if self.local_path and os.path.exists(self.local_path):
            self.logger.debug(f"合并本地配置文件: {self.local_path}")
            config = deep_merge(config, self._read_yaml(self.local_path))

        return config

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> Settings:
        """
        加载、验证配置并构建 Settings

        Args:
            overrides: 命令行等来源的顶层覆盖项，值为 None 的项被忽略

        Returns:
            Settings: 运行配置

        Raises:
            ConfigError: 配置加载或验证失败
        """
        config = self.load_raw_config()
        if overrides:
            config = deep_merge(config, {k: v for k, v in overrides.items() if v is not None})

        unknown = set(config) - set(ConfigValidator.known_keys())
        if unknown:
            self.logger.warning(f"忽略未知配置项: {', '.join(sorted(unknown))}")

        ConfigValidator.validate_settings(config)
        self.config = config

        settings = self._build_settings(config)
        self.logger.info(f"配置验证成功，包含 {len(settings.target_urls)} 个监控目标")
        return settings

    @staticmethod
    def _build_settings(config: Dict[str, Any]) -> Settings:
        reporting_fields = {f.name for f in dataclasses.fields(ReportingSettings)}
        reporting = ReportingSettings(**{
            k: v for k, v in config.get('reporting', {}).items() if k in reporting_fields
        })

        settings_fields = {f.name for f in dataclasses.fields(Settings)} - {'reporting'}
        values = {k: v for k, v in config.items() if k in settings_fields}
        return Settings(reporting=reporting, **values)
