import random
from typing import List, Optional

from ..config import Settings
from ..config_manager import ConfigManager
from ..transport_manager import TransportManager
from .base import BaseDanmuProvider
from .custom import CustomDanmuProvider
from .json_api import JsonDanmuProvider
from .markup import MarkupDanmuProvider


def build_providers(
    settings: Settings,
    transport_manager: TransportManager,
    config_manager: Optional[ConfigManager] = None,
    rng: Optional[random.Random] = None,
) -> List[BaseDanmuProvider]:
    """按优先级创建弹幕源：自建API -> XML弹幕源 (按配置顺序) -> JSON弹幕源。"""
    provider_settings = settings.providers
    providers: List[BaseDanmuProvider] = [
        CustomDanmuProvider(
            transport_manager, config_manager,
            name="custom",
            base_timeout=provider_settings.custom_timeout,
            density=settings.density,
            rng=rng,
        ),
    ]
    for base_url in provider_settings.markup_base_urls:
        providers.append(MarkupDanmuProvider(
            base_url, transport_manager, config_manager,
            base_timeout=provider_settings.markup_timeout,
            platform_timeouts=provider_settings.platform_timeouts,
            density=settings.density,
            rng=rng,
        ))
    if provider_settings.json_api_url:
        providers.append(JsonDanmuProvider(
            provider_settings.json_api_url, transport_manager, config_manager,
            base_timeout=provider_settings.json_timeout,
            platform_timeouts=provider_settings.platform_timeouts,
            density=settings.density,
            rng=rng,
        ))
    return providers


__all__ = [
    "BaseDanmuProvider",
    "CustomDanmuProvider",
    "MarkupDanmuProvider",
    "JsonDanmuProvider",
    "build_providers",
]
