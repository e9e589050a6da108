"""
默认运行时配置定义
每个配置项格式: (默认值, 描述)
"""


def get_default_configs(settings=None):
    """
    获取默认配置字典

    Args:
        settings: 静态 Settings 对象；自建弹幕API的地址和 Token 从 settings.providers 读取初始值

    Returns:
        dict: 默认配置字典
    """
    custom_endpoint = settings.providers.custom_endpoint if settings is not None else ''
    custom_token = settings.providers.custom_token if settings is not None else ''

    configs = {
        # 用户自建弹幕API (danmu_api)
        'danmuApiEndpoint': (custom_endpoint, '用户自建弹幕API的地址，例如 https://your-danmu-api.vercel.app。与 Token 同时配置时优先使用。'),
        'danmuApiToken': (custom_token, '用户自建弹幕API的访问 Token。'),

        # 弹幕过滤
        'danmuBlacklistRegex': ('', '额外的弹幕黑名单正则表达式。单行用 | 分隔，多行时每行一条，# 开头为注释。'),

        # 代理
        'proxyUrl': ('', '全局HTTP/HTTPS/SOCKS5代理地址。'),
        'proxyEnabled': ('false', '是否全局启用代理。'),

        # 调试
        'providerLogResponses': ('false', '是否将弹幕源和豆瓣的原始响应记录到 provider_responses.log。'),
    }
    return configs
