import re
from enum import Enum, IntEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# 弹幕时间的合法上限：24小时
MAX_DANMU_TIME = 86400.0


def parse_episode_number(episode: Optional[str]) -> Optional[int]:
    """将集数参数解析为正整数（"3"、"3集" 均为 3）；无法解析或非正数时返回 None。"""
    if not episode:
        return None
    match = re.match(r"\s*(\d+)", str(episode))
    if not match:
        return None
    number = int(match.group(1))
    return number if number > 0 else None


class DanmuMode(IntEnum):
    """弹幕运动模式，数值与播放器 (Artplayer) 保持一致。"""
    SCROLL = 0
    TOP = 1
    BOTTOM = 2


class ProviderTier(str, Enum):
    CUSTOM = "custom"
    MARKUP = "markup"
    JSON = "json"
    NONE = "none"


# Comment 模块模型
class CommentEntry(BaseModel):
    text: str = Field(..., description="弹幕内容")
    time: float = Field(..., ge=0, le=MAX_DANMU_TIME, description="弹幕出现时间(秒)")
    color: str = Field("#FFFFFF", pattern=r"^#[0-9A-F]{6}$", description="弹幕颜色 #RRGGBB")
    mode: DanmuMode = Field(DanmuMode.SCROLL, description="0=滚动, 1=顶部, 2=底部")


class PlatformLink(BaseModel):
    """某个视频平台上的播放页链接，由解析器创建，仅在单次请求内有效。"""
    model_config = ConfigDict(frozen=True)

    platform: str = Field(..., description="平台标识, e.g., 'tencent', 'bilibili_douban'")
    url: str = Field(..., description="平台播放页面URL")
    episodeCode: Optional[str] = Field(None, description="URL中的分集标识符")
    episodeNumber: Optional[int] = Field(None, description="URL中可直接读出的集数 (如B站的p参数)")


class ProviderResult(BaseModel):
    platform: str
    url: str
    comments: List[CommentEntry] = Field(default_factory=list)
    providerTier: ProviderTier = ProviderTier.NONE
    providerName: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.comments)


class PlatformInfo(BaseModel):
    platform: str
    url: str
    count: int


class AggregateResponse(BaseModel):
    danmu: List[CommentEntry] = Field(default_factory=list, description="按时间升序、已去重的弹幕")
    platforms: List[PlatformInfo] = Field(default_factory=list)
    total: int = 0
    message: Optional[str] = None


class DanmuQuery(BaseModel):
    mediaId: Optional[str] = Field(None, description="豆瓣ID")
    title: Optional[str] = Field(None, description="标题")
    year: Optional[str] = Field(None, description="年份")
    episode: Optional[str] = Field(None, description="集数")

    @model_validator(mode="after")
    def normalize_blank_fields(self):
        # 空字符串视为未提供
        for field_name in ("mediaId", "title", "year", "episode"):
            value = getattr(self, field_name)
            if isinstance(value, str) and not value.strip():
                setattr(self, field_name, None)
        return self

    @property
    def episode_number(self) -> Optional[int]:
        return parse_episode_number(self.episode)
