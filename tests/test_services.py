import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FACADES, FakeWebSocket, settle
from juju_client.apis import BundleChangesError
from juju_client.facades import FacadeError
from juju_client.models import AuthState, Credentials
from juju_client.services import ControllerService
from juju_client.transport import TransportState


class TestClose:
    @pytest.mark.asyncio
    async def test_stops_the_pinger_once(self, conn, service):
        pinger = MagicMock()
        service._pinger = pinger

        await service.close()
        await service.close()

        pinger.cancel.assert_called_once_with()
        assert service._pinger is None

    @pytest.mark.asyncio
    async def test_resets_attributes(self, service):
        service._auth.controller_access = "test"
        service._auth.model_access = "admin"

        await service.close()

        assert service.controller_access == ""
        assert service.model_access == ""

    @pytest.mark.asyncio
    async def test_disconnects_the_user(self, conn, service):
        service._auth._state = AuthState.AUTHENTICATED
        done = MagicMock()

        await service.close(done)

        done.assert_called_once_with()
        assert service.is_authenticated is False
        assert service.auth_state is AuthState.LOGGED_OUT
        assert conn.close_count == 1

    @pytest.mark.asyncio
    async def test_keeps_credentials(self, service):
        await service.close()
        assert service.get_credentials() == Credentials(user="user", password="password")

    @pytest.mark.asyncio
    async def test_closes_the_bundle_service(self, conn, settings):
        bundle_service = MagicMock()
        service = ControllerService(conn, settings=settings, bundle_service=bundle_service)

        await service.close()

        bundle_service.close.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_calls_after_close_are_dropped(self, conn, service):
        await service.close()
        future = service.ping()
        await settle()

        assert conn.messages == []
        assert not future.done()


class TestPinger:
    @pytest.mark.asyncio
    async def test_pings_the_server(self, conn, service):
        service.ping()

        assert conn.last_message() == {
            "type": "Pinger",
            "request": "Ping",
            "version": 1,
            "request-id": 1,
            "params": {},
        }

    @pytest.mark.asyncio
    async def test_ping_without_facade(self, conn, service):
        service.facades.set({})
        with pytest.raises(FacadeError):
            service.ping()
        assert conn.messages == []

    @pytest.mark.asyncio
    async def test_pinger_starts_after_login(self, conn, settings):
        settings = replace(settings, ping_interval_seconds=0.01)
        service = ControllerService(conn, settings=settings, credentials=Credentials(user="user", password="pw"))
        task = asyncio.create_task(service.login())
        await settle()
        conn.msg(
            {
                "request-id": 1,
                "response": {"user-info": {}, "facades": [{"name": "Pinger", "versions": [1]}]},
            }
        )
        await task

        assert service._pinger is not None
        await asyncio.sleep(0.05)
        assert any(message["request"] == "Ping" for message in conn.messages)

        await service.close()
        assert service._pinger is None


@pytest.mark.asyncio
async def test_watcher_starts_after_login(conn, settings):
    service = ControllerService(
        conn,
        settings=replace(settings, watch_all=True),
        credentials=Credentials(user="user", password="pw"),
    )
    deltas = []
    service.on_delta.connect(lambda event: deltas.extend(event.deltas))
    task = asyncio.create_task(service.login())
    await settle()
    conn.msg(
        {
            "request-id": 1,
            "response": {
                "user-info": {},
                "facades": [{"name": "Client", "versions": [1]}, {"name": "AllWatcher", "versions": [1]}],
            },
        }
    )
    await task
    await settle()

    assert conn.last_message()["request"] == "WatchAll"
    conn.msg({"request-id": 2, "response": {"watcher-id": "7"}})
    await settle()
    conn.msg({"request-id": 3, "response": {"deltas": [["service", "deploy", {}]]}})
    await settle()

    assert deltas == [("serviceInfo", "deploy", {})]
    await service.close()
    assert not service.watcher.running


@pytest.mark.asyncio
async def test_list_models_with_info_requires_credentials(conn, service):
    service.set_credentials(None)

    with pytest.raises(Exception, match="called without credentials"):
        await service.list_models_with_info()
    assert conn.messages == []


class TestBundleChanges:
    @pytest.fixture
    def authenticated(self, service):
        service._auth._state = AuthState.AUTHENTICATED
        return service

    @pytest.mark.asyncio
    async def test_requests_changes_from_controller(self, conn, authenticated):
        yaml = "foo:\n  bar: baz"
        task = asyncio.create_task(authenticated.get_bundle_changes(yaml))
        await settle()

        assert conn.last_message() == {
            "request-id": 1,
            "type": "Bundle",
            "version": 1,
            "request": "GetChanges",
            "params": {"yaml": yaml},
        }
        conn.msg({"request-id": 1, "response": {"changes": ["foo"]}})
        assert await task == ["foo"]

    @pytest.mark.asyncio
    async def test_error_list(self, conn, authenticated):
        task = asyncio.create_task(authenticated.get_bundle_changes("foo: bar"))
        await settle()
        conn.msg({"request-id": 1, "response": {"errors": ["bad wolf"]}})

        with pytest.raises(BundleChangesError) as excinfo:
            await task
        assert excinfo.value.errors == ["bad wolf"]

    @pytest.mark.asyncio
    async def test_yaml_parsing_errors(self, conn, authenticated):
        task = asyncio.create_task(authenticated.get_bundle_changes("foo: bar"))
        await settle()
        conn.msg({"request-id": 1, "error": "bad wolf"})

        with pytest.raises(BundleChangesError) as excinfo:
            await task
        assert excinfo.value.errors == ["bad wolf"]

    @pytest.mark.asyncio
    async def test_falls_back_to_bundle_service(self, conn, settings):
        bundle_service = MagicMock()
        bundle_service.get_changes_from_yaml.return_value = ["change1", "change2"]
        service = ControllerService(conn, settings=settings, facades=FACADES, bundle_service=bundle_service)

        changes = await service.get_bundle_changes("foo: bar")

        assert changes == ["change1", "change2"]
        bundle_service.get_changes_from_yaml.assert_called_once_with("foo: bar")
        assert conn.messages == []

    @pytest.mark.asyncio
    async def test_bundle_service_errors(self, conn, settings):
        bundle_service = MagicMock()
        bundle_service.get_changes_from_yaml.side_effect = BundleChangesError(["bad wolf"])
        service = ControllerService(conn, settings=settings, bundle_service=bundle_service)

        with pytest.raises(BundleChangesError) as excinfo:
            await service.get_bundle_changes("not valid")
        assert excinfo.value.errors == ["bad wolf"]

    @pytest.mark.asyncio
    async def test_no_bundle_service(self, service):
        with pytest.raises(BundleChangesError):
            await service.get_bundle_changes("foo: bar")


class TestOpen:
    @pytest.fixture
    def socket(self, monkeypatch):
        socket = FakeWebSocket()
        monkeypatch.setattr("juju_client.transport.websockets.connect", AsyncMock(return_value=socket))
        return socket

    @pytest.mark.asyncio
    async def test_builds_service_from_settings(self, socket, settings, monkeypatch):
        configure_logging = MagicMock()
        monkeypatch.setattr("juju_client.services.configure_logging", configure_logging)
        settings = replace(
            settings,
            user="admin",
            password="s3cret",
            log_level="DEBUG",
            bundle_service_url="https://bundles.example.com",
        )

        service = await ControllerService.open(settings)

        configure_logging.assert_called_once_with("DEBUG")
        assert service.transport.state is TransportState.OPEN
        assert service.get_credentials() == Credentials(user="admin", password="s3cret")

        await service.close()
        assert socket.closed
        assert service.transport.state is TransportState.CLOSED

    @pytest.mark.asyncio
    async def test_without_user(self, socket, settings, monkeypatch):
        monkeypatch.setattr("juju_client.services.configure_logging", MagicMock())

        service = await ControllerService.open(settings)

        assert service.get_credentials() == Credentials()
        await service.close()
