"""
静态配置

配置来源优先级（高 -> 低）:
1. 环境变量，前缀 DANMU_，嵌套字段用双下划线分隔（如 DANMU_SERVER__PORT=7768）
2. .env 文件
3. config/config.yml
4. 下方定义的默认值
"""
from pathlib import Path
from typing import Dict, List, Tuple, Type

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_YAML_PATH = Path("config/config.yml")


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 7768


class LogConfig(BaseModel):
    level: str = "INFO"
    directory: str = "config/logs"


class ResolverConfig(BaseModel):
    douban_base_url: str = "https://movie.douban.com"
    douban_timeout: float = 10.0
    # 豆瓣请求的随机延时窗口（秒）
    douban_jitter: Tuple[float, float] = (0.3, 1.0)
    min_request_interval: float = 1.0
    include_direct_links: bool = True
    caiji_base_url: str = "https://www.caiji.cyou"
    caiji_timeout: float = 10.0
    title_denylist: List[str] = ["解说", "预告", "花絮", "动态漫", "之精彩"]


class ProviderConfig(BaseModel):
    min_threshold: int = 100
    # 用户自建弹幕API，地址和 Token 同时配置时作为第一级弹幕源
    custom_endpoint: str = ""
    custom_token: str = ""
    custom_timeout: float = 20.0
    markup_base_urls: List[str] = ["https://fc.lyz05.cn", "https://danmu.smone.us"]
    markup_timeout: float = 15.0
    json_api_url: str = "https://api.danmu.icu/"
    json_timeout: float = 20.0
    # 源站较慢的平台使用更长的超时
    platform_timeouts: Dict[str, float] = Field(
        default_factory=lambda: {"iqiyi.com": 30.0, "youku.com": 25.0, "mgtv.com": 25.0}
    )


class DensityConfig(BaseModel):
    segment_duration: int = 300
    max_per_segment: int = 500
    replace_probability: float = 0.1
    # approximate | reservoir
    strategy: str = "approximate"
    max_total: int = 20000
    yield_every: int = 200


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DANMU_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file=CONFIG_YAML_PATH,
        extra="ignore",
    )

    environment: str = "production"
    server: ServerConfig = ServerConfig()
    log: LogConfig = LogConfig()
    resolver: ResolverConfig = ResolverConfig()
    providers: ProviderConfig = ProviderConfig()
    density: DensityConfig = DensityConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )


settings = Settings()
