"""Every long-running piece satisfies the shared lifecycle protocol."""

from liveserve.server import Component, RequestHandler, WebServer
from liveserve.watch import FileWatcher
from liveserve.web import StaticFileService
from liveserve.ws import WebSocketServer


def test_components_share_lifecycle(server_config, site):
    server = WebServer(server_config)

    assert isinstance(server, Component)
    assert isinstance(server.http, Component)
    assert isinstance(WebSocketServer(server_config), Component)
    assert isinstance(FileWatcher(site), Component)


def test_request_handlers(server_config):
    server = WebServer(server_config)

    assert isinstance(server.files, StaticFileService)
    assert isinstance(server.files, RequestHandler)
    assert isinstance(server.http, RequestHandler)
    assert not isinstance(server.files, Component)
