import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

# 外部站点配置的读取函数：给定键名返回配置值，不存在时返回 None
ConfigLoader = Callable[[str], Awaitable[Optional[Any]]]


class ConfigManager:
    """
    一个用于集中管理、缓存和初始化运行时配置项的管理器。

    配置的持久化由外部站点配置服务负责，这里只通过 loader 读取；
    未接入外部服务时，所有值都保存在内存中。
    """

    def __init__(self, loader: Optional[ConfigLoader] = None, initial: Optional[Dict[str, Any]] = None):
        self._loader = loader
        self._store: Dict[str, Any] = dict(initial or {})
        self._cache: Dict[str, Any] = {}
        self._lock = asyncio.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        """
        从缓存或配置源中获取一个配置项。
        如果缓存中存在，则直接返回。
        否则，从配置源中获取，存入缓存，然后返回。
        """
        if key in self._cache:
            return self._cache[key]

        async with self._lock:
            # 再次检查，防止在等待锁的过程中其他协程已经加载了配置
            if key in self._cache:
                return self._cache[key]

            value = None
            if self._loader is not None:
                try:
                    value = await self._loader(key)
                except Exception as e:
                    self.logger.error(f"读取外部配置 '{key}' 失败，使用本地值: {e}")
                    value = None
            if value is None:
                value = self._store.get(key, default)
            self._cache[key] = value
            return value

    async def get_bool(self, key: str, default: bool = False) -> bool:
        value = await self.get(key, "true" if default else "false")
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() == 'true'

    async def setValue(self, configKey: str, configValue: str):
        """
        更新一个配置项的值，并使缓存失效。
        """
        self._store[configKey] = configValue
        self.invalidate(configKey)

    async def register_defaults(self, defaults: Dict[str, Tuple[Any, str]]):
        """
        注册默认配置项。
        只有当配置项尚不存在时才会写入默认值。
        """
        for key, (value, _description) in defaults.items():
            self._store.setdefault(key, value)

    def invalidate(self, key: str):
        """从缓存中移除一个特定的键，以便下次获取时能重新加载。"""
        if key in self._cache:
            del self._cache[key]
            self.logger.info(f"配置缓存已失效: '{key}'")

