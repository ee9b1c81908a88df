"""Preview server for Inkwell.

Serves the built site with live reload for local authoring:
- Injects a reload script into HTML responses.
- Rejects directory listings and missing paths with a 404 (serving 404.html when present).
- Watches source folders and triggers rebuilds plus client reloads.

A failed rebuild prints the error and leaves the previous site in place,
since build_site only swaps its staging tree in after a complete build.

Key classes:
- DevServer: Main class for running the preview server.
- _ReloadHandler: HTTP request handler that injects reload script and enforces 404s.
- _ChangeHandler: File system event handler for triggering rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site
from .config import CONFIG_FILENAME, load_config
from .content import DRAFTS_DIR, POSTS_DIR
from .errors import InkwellError

# Folders always watched recursively. Page folders are added per project;
# top-level pages and _config.yml come from a non-recursive root watch.
WATCHED_DIRS = (POSTS_DIR, DRAFTS_DIR, "_layouts", "_includes", "_data", "_themes", "assets")


class _ReloadHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that injects live reload script into HTML pages.

    Attributes:
        reload_script: JavaScript code for WebSocket connection to trigger reloads.
    """

    reload_script_template = """
    <script>
    (() => {{
      const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
      ws.onmessage = (event) => {{
        const data = JSON.parse(event.data || '{{}}');
        if (data.type === 'reload') location.reload();
      }};
    }})();
    </script>
    """
    reload_script = reload_script_template.format(ws_port=4001)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._serve_404()

    def _inject(self, content: str) -> bytes:
        if "</body>" in content:
            content = content.replace("</body>", f"{self.reload_script}</body>")
        else:
            content += self.reload_script
        return content.encode("utf-8")

    def _send_html(self, status: int, path: Path) -> None:
        encoded = self._inject(path.read_text(encoding="utf-8"))
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _serve_404(self):
        """Serve 404.html (when present) with injected reload script and a 404 status."""
        error_page = Path(self.directory) / "404.html"
        if error_page.exists():
            self._send_html(404, error_page)
            return None
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        path_obj = Path(self.translate_path(self.path))
        if path_obj.is_dir():
            index_path = path_obj / "index.html"
            if not index_path.exists():
                return self._serve_404()
            path_obj = index_path
        elif not path_obj.exists():
            return self._serve_404()

        if path_obj.suffix == ".html":
            self._send_html(200, path_obj)
            return None
        return super().send_head()


class DevServer:
    """Preview server with live reload functionality.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        output_dir: Directory where the built site is served.
        ws_port: Port for WebSocket connections.
        http_port: Port for HTTP server.
    """

    def __init__(self, project_root: Path, http_port: int | None = None, ws_port: int | None = None):
        """Initialize the preview server.

        Args:
            project_root: Root directory of the project.
            http_port: Optional override for the configured HTTP port.
            ws_port: Optional override for the configured WebSocket port.

        Raises:
            ConfigError: If _config.yml is missing or invalid.
        """
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config.output_dir
        self.http_port = int(http_port or self.config.port)
        if ws_port is not None:
            self.ws_port = ws_port
        elif http_port is not None or self.config.ws_port is None:
            self.ws_port = self.http_port + 1
        else:
            self.ws_port = self.config.ws_port
        self._reload_script = _ReloadHandler.reload_script_template.format(ws_port=self.ws_port)
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._lock = threading.Lock()
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.05
        self._post_build_delay = 0.05

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - integration path
        build_site(self.project_root, include_drafts=include_drafts)
        self._last_signature = self._compute_signature()
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self._start_watcher(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at http://localhost:{self.http_port}")
        httpd.serve_forever()

    def _start_ws(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            print(f"WebSocket server failed to start (port {self.ws_port}): {exc}")

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self):
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str):
        stale = set()
        for ws in self._ws_clients:
            try:
                await ws.send(message)
            except websockets.ConnectionClosed:
                stale.add(ws)
        for ws in stale:
            self._ws_clients.discard(ws)

    def _source_dirs(self) -> list[Path]:
        """Return existing source folders: the fixed ones plus page folders."""
        dirs = [self.project_root / folder for folder in WATCHED_DIRS]
        for path in sorted(self.project_root.iterdir()):
            if (
                path.is_dir()
                and not path.name.startswith((".", "_"))
                and path.name not in WATCHED_DIRS
                and path.name not in self.config.exclude
                and not self.is_ignored(path)
            ):
                dirs.append(path)
        return [d for d in dirs if d.is_dir()]

    def _start_watcher(self, include_drafts: bool) -> None:
        handler = _ChangeHandler(self, include_drafts)
        observer = Observer()
        for watch_path in self._source_dirs():
            observer.schedule(handler, str(watch_path), recursive=True)
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def rebuild(self, include_drafts: bool) -> bool:
        """Rebuild the site after a change.

        Returns:
            True if a new site was built and clients were told to reload.
        """
        now = time.time()
        if (now - self._last_rebuild_at) < self._debounce_seconds:
            return False
        if not self._lock.acquire(blocking=False):
            return False
        try:
            signature = self._compute_signature()
            if signature is not None and signature == self._last_signature:
                return False
            print("Change detected; rebuilding...")
            try:
                build_site(self.project_root, include_drafts=include_drafts)
            except InkwellError as exc:
                print(f"{exc.kind} error: {exc}")
                print("Keeping the previous build.")
                self._last_signature = signature
                return False
            self._last_signature = signature
            if self._post_build_delay:
                time.sleep(self._post_build_delay)
            self._broadcast_reload()
            return True
        finally:
            self._last_rebuild_at = time.time()
            self._lock.release()

    def _watched_files(self):
        for root in self._source_dirs():
            yield from sorted(p for p in root.rglob("*") if not p.is_dir())
        for path in sorted(self.project_root.iterdir()):
            if path.is_file() and (path.name == CONFIG_FILENAME or not path.name.startswith((".", "_"))):
                yield path

    def _compute_signature(self) -> tuple | None:
        entries: list[tuple] = []
        for path in self._watched_files():
            try:
                stat = path.stat()
            except OSError:
                continue
            rel = path.relative_to(self.project_root)
            entries.append((rel.as_posix(), stat.st_mtime_ns, stat.st_size))
        return tuple(entries) if entries else None

    def is_ignored(self, path: Path) -> bool:
        """Check whether a changed path lies in build output or vendored trees."""
        for ignored in (
            self.output_dir,
            self.output_dir.with_name(self.output_dir.name + ".staging"),
            self.output_dir.with_name(self.output_dir.name + ".old"),
        ):
            try:
                path.relative_to(ignored)
                return True
            except ValueError:
                pass
        return "node_modules" in path.parts or ".git" in path.parts


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory:
            return
        if self.server.is_ignored(Path(event.src_path)):
            return
        self.server.rebuild(self.include_drafts)
