import asyncio
import io

import websockets

from inkwell.server import DevServer, _ChangeHandler, _ReloadHandler


class DummyEvent:
    def __init__(self, path, is_directory=False):
        self.src_path = path
        self.is_directory = is_directory


def make_handler(directory, path):
    handler = _ReloadHandler.__new__(_ReloadHandler)
    handler.path = path
    handler.directory = str(directory)
    handler.command = "GET"
    handler.request_version = "HTTP/1.1"
    handler.server_version = ""
    handler.sys_version = ""
    handler._headers_buffer = []
    handler.headers = {}
    handler.rfile = io.BytesIO(b"")
    handler.wfile = io.BytesIO()
    handler.codes = []
    handler.send_response = lambda code, message=None: handler.codes.append(code)
    handler.send_header = lambda *args, **kwargs: None
    handler.end_headers = lambda: None
    handler.send_error = lambda code, *args, **kwargs: handler.codes.append(("error", code))
    return handler


def test_ports_from_config_and_overrides(site):
    server = DevServer(site)
    assert (server.http_port, server.ws_port) == (4000, 4001)
    assert ":4001" in server._reload_script

    config_path = site / "_config.yml"
    config_path.write_text(
        config_path.read_text(encoding="utf-8") + "port: 8000\nws_port: 9000\n", encoding="utf-8"
    )
    assert (DevServer(site).http_port, DevServer(site).ws_port) == (8000, 9000)
    assert DevServer(site, http_port=5055).ws_port == 5056
    assert DevServer(site, http_port=5055, ws_port=6000).ws_port == 6000


def test_output_dir_follows_config(site):
    config_path = site / "_config.yml"
    config_path.write_text(
        config_path.read_text(encoding="utf-8") + "output_dir: public\n", encoding="utf-8"
    )
    assert DevServer(site).output_dir == site / "public"


def test_change_handler_skips_output_and_vendor(site):
    server = DevServer(site)
    calls = []
    server.rebuild = lambda include_drafts: calls.append(include_drafts)
    handler = _ChangeHandler(server, include_drafts=True)

    handler.on_any_event(DummyEvent(str(site / "_site" / "index.html")))
    handler.on_any_event(DummyEvent(str(site / "_site.staging" / "index.html")))
    handler.on_any_event(DummyEvent(str(site / "node_modules" / "x.js")))
    handler.on_any_event(DummyEvent(str(site / "_posts"), is_directory=True))
    assert calls == []

    handler.on_any_event(DummyEvent(str(site / "_posts" / "2025-01-01-a.md")))
    assert calls == [True]


def test_rebuild_builds_then_reloads(monkeypatch, site):
    server = DevServer(site)
    server._post_build_delay = 0.01
    calls = []
    monkeypatch.setattr(
        "inkwell.server.build_site",
        lambda root, include_drafts=False: calls.append(("build", include_drafts)),
    )
    server._broadcast_reload = lambda: calls.append("reload")
    slept = []
    monkeypatch.setattr("inkwell.server.time.sleep", lambda secs: slept.append(secs))

    assert server.rebuild(include_drafts=True)
    assert calls == [("build", True), "reload"]
    assert slept == [0.01]


def test_rebuild_skips_unchanged_and_concurrent(monkeypatch, site):
    server = DevServer(site)
    server._debounce_seconds = 0.0
    server._post_build_delay = 0
    calls = []
    monkeypatch.setattr("inkwell.server.build_site", lambda *args, **kwargs: calls.append("built"))
    server._broadcast_reload = lambda: calls.append("reloaded")
    sigs = iter([("a",), ("a",), ("b",)])
    server._compute_signature = lambda: next(sigs)

    assert server.rebuild(include_drafts=False)
    server._lock.acquire()
    assert not server.rebuild(include_drafts=False)  # another rebuild in progress
    server._lock.release()
    assert not server.rebuild(include_drafts=False)  # same signature
    assert server.rebuild(include_drafts=False)
    assert calls == ["built", "reloaded", "built", "reloaded"]


def test_failed_rebuild_keeps_previous_site(site, write_post, capsys):
    write_post(site, "2025-01-01-good.md", title="Good")
    server = DevServer(site)
    server._debounce_seconds = 0.0
    server._post_build_delay = 0
    reloads = []
    server._broadcast_reload = lambda: reloads.append(True)

    assert server.rebuild(include_drafts=False)
    index = (site / "_site" / "index.html").read_text(encoding="utf-8")

    write_post(site, "2025-01-02-bad.md", title=None)
    assert not server.rebuild(include_drafts=False)
    out = capsys.readouterr().out
    assert "Parse error" in out
    assert "Keeping the previous build" in out
    assert (site / "_site" / "index.html").read_text(encoding="utf-8") == index
    assert reloads == [True]


def test_compute_signature(site, write_post):
    write_post(site, "2025-01-01-a.md", title="A")
    (site / "about.md").write_text("# About", encoding="utf-8")
    (site / "docs").mkdir()
    (site / "docs" / "guide.md").write_text("# Guide", encoding="utf-8")
    (site / "node_modules").mkdir()
    (site / "node_modules" / "x.md").write_text("x", encoding="utf-8")
    (site / "_site").mkdir()
    (site / "_site" / "index.html").write_text("built", encoding="utf-8")
    server = DevServer(site)

    names = [entry[0] for entry in server._compute_signature()]
    assert "_posts/2025-01-01-a.md" in names
    assert "_config.yml" in names
    assert "about.md" in names
    assert "docs/guide.md" in names
    assert "node_modules/x.md" not in names
    assert not any(name.startswith("_site") for name in names)


def test_start_watcher_schedules_sources(monkeypatch, site):
    (site / "_layouts").mkdir()
    server = DevServer(site)
    scheduled = []

    class DummyObserver:
        def schedule(self, handler, path, recursive):
            scheduled.append((path, recursive))

        def start(self):
            scheduled.append(("started", True))

    monkeypatch.setattr("inkwell.server.Observer", DummyObserver)
    server._start_watcher(include_drafts=False)
    assert (str(site / "_posts"), True) in scheduled
    assert (str(site / "_layouts"), True) in scheduled
    assert (str(site), False) in scheduled
    assert not any(path == str(site / "_drafts") for path, _ in scheduled)
    assert scheduled[-1] == ("started", True)


def test_async_broadcast_drops_closed_clients(site):
    server = DevServer(site)

    class GoodWS:
        def __init__(self):
            self.messages = []

        async def send(self, msg):
            self.messages.append(msg)

    class ClosedWS:
        async def send(self, msg):
            raise websockets.ConnectionClosed(None, None)

    good, closed = GoodWS(), ClosedWS()
    server._ws_clients = {good, closed}
    asyncio.run(server._async_broadcast("hello"))
    assert good.messages == ["hello"]
    assert server._ws_clients == {good}


def test_stop_and_ws_handler(site):
    server = DevServer(site)
    server.stop()

    class DummyObserver:
        def __init__(self):
            self.calls = []

        def stop(self):
            self.calls.append("stop")

        def join(self):
            self.calls.append("join")

    server._observer = DummyObserver()
    server.stop()
    assert server._observer.calls == ["stop", "join"]

    class DummyWS:
        async def wait_closed(self):
            assert self in server._ws_clients

    ws = DummyWS()
    asyncio.run(server._ws_handler(ws))
    assert ws not in server._ws_clients


def test_reload_handler_injects_script(tmp_path):
    (tmp_path / "index.html").write_text("<html><body>Hello</body></html>", encoding="utf-8")
    handler = make_handler(tmp_path, "/")
    assert _ReloadHandler.send_head(handler) is None
    body = handler.wfile.getvalue()
    assert handler.codes == [200]
    assert b"WebSocket" in body
    assert body.index(b"WebSocket") < body.index(b"</body>")


def test_reload_handler_serves_custom_404(tmp_path):
    (tmp_path / "404.html").write_text("<p>oops</p>", encoding="utf-8")
    handler = make_handler(tmp_path, "/missing/")
    _ReloadHandler.send_head(handler)
    assert handler.codes == [404]
    assert handler.wfile.getvalue().startswith(b"<p>oops</p>")


def test_reload_handler_plain_404(tmp_path):
    handler = make_handler(tmp_path, "/nothing.html")
    _ReloadHandler.send_head(handler)
    assert handler.codes == [("error", 404)]


def test_reload_handler_passes_other_files_through(tmp_path):
    (tmp_path / "style.css").write_text("body{}", encoding="utf-8")
    handler = make_handler(tmp_path, "/style.css")
    result = _ReloadHandler.send_head(handler)
    try:
        assert result.read() == b"body{}"
    finally:
        result.close()
