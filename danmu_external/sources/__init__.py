from .caiji import TitleSearchSource
from .douban import DoubanPageSource

__all__ = ["DoubanPageSource", "TitleSearchSource"]
