import asyncio

import httpx

from danmu_external.config import Settings
from danmu_external.config_manager import ConfigManager
from danmu_external.default_configs import get_default_configs
from danmu_external.transport_manager import DEFAULT_USER_AGENT, TransportManager


def test_defaults_do_not_override_existing_values():
    async def scenario():
        manager = ConfigManager(initial={"danmuApiToken": "kept"})
        await manager.register_defaults(get_default_configs())
        return await manager.get("danmuApiToken"), await manager.get("proxyEnabled"), await manager.get_bool("proxyEnabled")

    assert asyncio.run(scenario()) == ("kept", "false", False)


def test_loader_value_is_cached_and_invalidated():
    loads = []

    async def loader(key):
        loads.append(key)
        return "from-loader" if key == "danmuApiEndpoint" else None

    async def scenario():
        manager = ConfigManager(loader=loader, initial={"danmuApiToken": "local"})
        first = await manager.get("danmuApiEndpoint")
        second = await manager.get("danmuApiEndpoint")
        token = await manager.get("danmuApiToken")
        await manager.setValue("danmuApiEndpoint", "ignored-while-loader-has-value")
        third = await manager.get("danmuApiEndpoint")
        return first, second, token, third

    assert asyncio.run(scenario()) == ("from-loader", "from-loader", "local", "from-loader")
    assert loads.count("danmuApiEndpoint") == 2


def test_loader_failure_falls_back_to_local_store():
    async def loader(key):
        raise ConnectionError("config service down")

    async def scenario():
        manager = ConfigManager(loader=loader, initial={"proxyEnabled": "true"})
        return await manager.get_bool("proxyEnabled")

    assert asyncio.run(scenario()) is True


def test_settings_defaults():
    settings = Settings()
    assert settings.providers.min_threshold == 100
    assert settings.density.max_per_segment == 500
    assert settings.density.max_total == 20000
    assert settings.resolver.douban_timeout == 10


def test_settings_read_nested_environment(monkeypatch):
    monkeypatch.setenv("DANMU_PROVIDERS__MIN_THRESHOLD", "50")
    monkeypatch.setenv("DANMU_SERVER__PORT", "9000")
    settings = Settings()
    assert settings.providers.min_threshold == 50
    assert settings.server.port == 9000


def test_transport_manager_clients_share_transport_and_set_user_agent():
    seen = []

    def handler(request):
        seen.append(request.headers["User-Agent"])
        return httpx.Response(200)

    async def scenario():
        manager = TransportManager(transport=httpx.MockTransport(handler))
        async with await manager.create_client() as client:
            await client.get("https://example.com/")
        # 关闭客户端不会关闭共享 transport
        async with await manager.create_client() as client:
            await client.get("https://example.com/")
        await manager.close_all()

    asyncio.run(scenario())
    assert seen == [DEFAULT_USER_AGENT, DEFAULT_USER_AGENT]


def test_transport_manager_reuses_shared_transport():
    async def scenario():
        manager = TransportManager(ConfigManager())
        first = await manager.get_transport()
        second = await manager.get_transport()
        await manager.close_all()
        return first is second

    assert asyncio.run(scenario())


def test_transport_manager_uses_proxy_transport_when_enabled():
    async def scenario():
        config_manager = ConfigManager(initial={"proxyUrl": "http://127.0.0.1:7890", "proxyEnabled": "true"})
        manager = TransportManager(config_manager)
        proxied = await manager.get_transport()
        await config_manager.setValue("proxyEnabled", "false")
        direct = await manager.get_transport()
        await manager.close_all()
        return proxied is not direct

    assert asyncio.run(scenario())


def test_custom_api_defaults_come_from_settings(monkeypatch):
    monkeypatch.setenv("DANMU_PROVIDERS__CUSTOM_ENDPOINT", "https://my-danmu.example")
    monkeypatch.setenv("DANMU_PROVIDERS__CUSTOM_TOKEN", "secret")
    defaults = get_default_configs(Settings())
    assert defaults["danmuApiEndpoint"][0] == "https://my-danmu.example"
    assert defaults["danmuApiToken"][0] == "secret"


def test_custom_api_defaults_are_empty_without_settings():
    defaults = get_default_configs()
    assert defaults["danmuApiEndpoint"][0] == ""
    assert defaults["danmuApiToken"][0] == ""
