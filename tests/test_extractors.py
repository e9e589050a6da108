import pytest

from danmu_external.extractors import (
    BilibiliLinkExtractor,
    IqiyiLinkExtractor,
    MgtvLinkExtractor,
    TencentLinkExtractor,
    YoukuLinkExtractor,
    default_extractors,
    select_episode_link,
)

from tests.helpers import douban_play_link


def _bilibili_part(url):
    return BilibiliLinkExtractor().parse_episode(url)[0]


@pytest.mark.parametrize("episode, expected", [
    (None, 0),
    ("", 0),
    ("abc", 0),
    ("0", 0),
    ("1", 0),
    ("3", 2),
    ("5", 4),
    ("9", 4),
])
def test_selection_uses_position_without_embedded_episode(episode, expected):
    candidates = [f"https://v.qq.com/x/cover/abc/v{i}.html" for i in range(5)]
    assert select_episode_link(candidates, episode) == candidates[expected]


def test_selection_prefers_embedded_episode_number():
    candidates = [
        "https://www.bilibili.com/bangumi/play/ss1?p=2",
        "https://www.bilibili.com/bangumi/play/ss1?p=7",
        "https://www.bilibili.com/bangumi/play/ss1?p=3",
    ]
    assert select_episode_link(candidates, "7", _bilibili_part) == candidates[1]
    # 没有精确匹配时回退到位置
    assert select_episode_link(candidates, "2", _bilibili_part) == candidates[0]


def test_selection_single_candidate_and_empty():
    assert select_episode_link(["only"], "8") == "only"
    assert select_episode_link([], "1") is None


def test_tencent_redirect_selects_episode_and_strips_query():
    html = "\n".join(douban_play_link(f"https://v.qq.com/x/cover/mzc001/v00{i}.html?ptag=douban") for i in range(1, 6))

    links = TencentLinkExtractor().extract(html, "3")

    assert len(links) == 1
    assert links[0].platform == "tencent"
    assert links[0].url == "https://v.qq.com/x/cover/mzc001/v003.html"
    assert links[0].episodeCode == "v003"


def test_tencent_direct_link_is_reported_separately():
    html = douban_play_link("https://m.v.qq.com/x/cover/mzc001/v001.html") + \
        '<a href="https://v.qq.com/x/cover/mzc002/v009.html?from=douban">腾讯视频</a>'

    links = TencentLinkExtractor().extract(html)

    assert [(l.platform, l.url) for l in links] == [
        ("tencent", "https://v.qq.com/x/cover/mzc001/v001.html"),
        ("tencent_direct", "https://v.qq.com/x/cover/mzc002/v009.html"),
    ]
    assert TencentLinkExtractor(include_direct_links=False).extract(html)[0].platform == "tencent"
    assert len(TencentLinkExtractor(include_direct_links=False).extract(html)) == 1


def test_bilibili_redirect_matches_part_regardless_of_position():
    parts = [1, 2, 3, 7, 5]
    html = "\n".join(douban_play_link(f"https://m.bilibili.com/bangumi/play/ep100?p={p}") for p in parts)

    links = BilibiliLinkExtractor(include_direct_links=False).extract(html, "7")

    assert links[0].platform == "bilibili_douban"
    assert links[0].episodeNumber == 7
    assert links[0].url == "https://www.bilibili.com/bangumi/play/ep100"


def test_bilibili_direct_link():
    html = '<a href="https://www.bilibili.com/video/BV1xx411c7mD?spm=1">B站</a>'
    links = BilibiliLinkExtractor().extract(html)
    assert [(l.platform, l.url) for l in links] == [("bilibili", "https://www.bilibili.com/video/BV1xx411c7mD")]


def test_iqiyi_mobile_link_is_rewritten():
    html = douban_play_link("https://m.iqiyi.com/v_19rrok4nt0.html?vfm=douban")
    links = IqiyiLinkExtractor().extract(html)
    assert links[0].url == "https://www.iqiyi.com/v_19rrok4nt0.html"
    assert links[0].episodeCode == "v_19rrok4nt0"


def test_youku_alipay_link_is_rewritten():
    html = douban_play_link("https://m.youku.com/alipay_video/id_XNTE5NjQ0.html?spm=a2h")
    links = YoukuLinkExtractor().extract(html)
    assert links[0].url == "https://v.youku.com/v_show/id_XNTE5NjQ0.html"
    assert links[0].episodeCode == "XNTE5NjQ0"


def test_mgtv_link_and_episode_code():
    html = douban_play_link("https://m.mgtv.com/b/338497/p/4010000.html")
    links = MgtvLinkExtractor().extract(html)
    assert links[0].url == "https://www.mgtv.com/b/338497/p/4010000.html"
    assert links[0].episodeCode == "4010000"


def test_page_without_links_yields_nothing():
    html = "<html><body>暂无播放源</body></html>"
    assert all(extractor.extract(html, "1") == [] for extractor in default_extractors())
