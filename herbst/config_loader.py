"""
配置加载器：获取 /api/config，按 schema 校验并补全默认值。
失败时回退到安全的默认配置，保证仪表盘始终可以渲染。
"""

import logging
from typing import Optional

from pydantic import BaseModel

from herbst.client import DashboardClient
from herbst.config_schema import (
    DockerConfig,
    HerbstConfig,
    SystemConfig,
    WeatherConfig,
    default_config,
    validate,
)
from herbst.errors import ConfigFetchError, ConfigValidationError
from herbst.themes import ThemeCatalog

logger = logging.getLogger(__name__)


class LoadResult(BaseModel):
    config: HerbstConfig
    notice: Optional[str] = None  # 使用默认配置时给界面的非阻塞提示

    @property
    def is_default(self) -> bool:
        return self.notice is not None


def _reset_disabled_sections(config: HerbstConfig) -> HerbstConfig:
    """将所有已禁用的功能段重置为默认值。"""
    updates = {}
    if not config.weather.enabled:
        updates["weather"] = WeatherConfig()
    if not config.docker.enabled:
        updates["docker"] = DockerConfig()
    if not config.system.enabled:
        updates["system"] = SystemConfig()
    return config.model_copy(update=updates) if updates else config


class ConfigLoader:
    """Loads the canonical configuration once per session."""

    def __init__(self, client: DashboardClient, theme_catalog: Optional[ThemeCatalog] = None):
        self._client = client
        self._theme_catalog = theme_catalog

    async def load(self) -> HerbstConfig:
        """
        Raises:
            ConfigFetchError: transport failure
            ConfigValidationError: malformed payload
        """
        raw = await self._client.get_config()
        config = validate(raw)
        config = _reset_disabled_sections(config)

        if not config.theme_vars and self._theme_catalog is not None:
            theme = self._theme_catalog.active_theme(config.theme)
            config = config.model_copy(update={"theme_vars": dict(theme.vars)})
            logger.info(f"Theme variables resolved locally from theme '{theme.name}'")

        logger.info(
            f"Config loaded: '{config.title}', theme={config.theme}, "
            f"{len(config.sections)} sections, {len(config.services)} legacy services"
        )
        return config

    async def load_or_default(self) -> LoadResult:
        """Like ``load`` but recovers into ``default_config()`` with a notice."""
        try:
            return LoadResult(config=await self.load())
        except ConfigFetchError as e:
            logger.error(f"Config fetch failed, using defaults: {e}")
            notice = f"Could not reach the dashboard server ({e}). Showing defaults."
        except ConfigValidationError as e:
            logger.error(f"Config invalid, using defaults: {e}")
            notice = f"Configuration is invalid ({e}). Showing defaults."
        return LoadResult(config=default_config(), notice=notice)
