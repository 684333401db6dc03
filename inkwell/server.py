"""Local preview server for Inkwell.

``inkwell serve`` builds the blog, serves the output directory over HTTP
and rebuilds whenever a post, template, ``about.md`` or ``inkwell.yaml``
changes. Each build is written to a staging directory first and only
swapped into place when it succeeds, so a broken post never blanks the
preview.

Key classes:
- DevServer: Builds, serves and watches a project.
- _SiteHandler: Serves clean ``/posts/{id}`` URLs and the site's 404 page.
- _ChangeHandler: Watchdog handler that asks the server to rebuild.
"""

from __future__ import annotations

import functools
import logging
import os
import shutil
import threading
import time
from collections.abc import Iterator
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import ABOUT_FILENAME, CONFIG_FILENAME, BuildError, build_site, load_config

logger = logging.getLogger(__name__)


class _SiteHandler(SimpleHTTPRequestHandler):
    """Request handler for the built blog.

    A directory path resolves to its ``index.html``; anything that does not
    resolve to a file gets the site's ``404.html`` with a 404 status.
    """

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._not_found()

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def _send_html(self, status: int, page: Path) -> None:
        body = page.read_bytes()
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self._send_html(404, page)
        else:
            self.send_error(404, "File not found")
        return None

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self._not_found()
        if target.suffix == ".html":
            self._send_html(200, target)
            return None
        return super().send_head()


class DevServer:
    """Builds a project, serves its output and rebuilds on change.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration from inkwell.yaml.
        output_dir: Directory served over HTTP.
        http_port: Port for the HTTP server.
    """

    def __init__(self, project_root: Path, http_port: int | None = None):
        """Initialize the server.

        Args:
            project_root: Root directory of the project.
            http_port: Port to listen on; defaults to ``port`` from the config.
        """
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config.get("output_dir", "public")
        self._staging_dir = self.output_dir.with_name(self.output_dir.name + ".staging")
        self.http_port = int(http_port or self.config.get("port", 4000))
        # Links in pages and feeds point at this server.
        self._root_url = f"http://localhost:{self.http_port}"
        self._observer: Observer | None = None
        self._httpd: ThreadingHTTPServer | None = None
        self._lock = threading.Lock()
        self._debounce_seconds = 0.05
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None

    def start(self) -> None:  # pragma: no cover - integration path
        self._build_and_swap()
        self._last_signature = self._compute_signature()
        threading.Thread(target=self._serve_http, daemon=True).start()
        self._start_watcher()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()
        httpd, self._httpd = self._httpd, None
        if httpd is not None:
            httpd.shutdown()

    def _serve_http(self) -> None:  # pragma: no cover - integration path
        handler = functools.partial(_SiteHandler, directory=str(self.output_dir))
        self._httpd = ThreadingHTTPServer(("", self.http_port), handler)
        logger.info("Serving %s at %s", self.output_dir, self._root_url)
        self._httpd.serve_forever()

    def _watch_targets(self) -> list[tuple[Path, bool]]:
        """Directories to watch, each with its recursive flag."""
        return [
            (self.project_root / self.config.get("posts_dir", "posts"), True),
            (self.project_root / "templates", True),
            # about.md and inkwell.yaml live directly in the root
            (self.project_root, False),
        ]

    def _start_watcher(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        for directory, recursive in self._watch_targets():
            if directory.is_dir():
                observer.schedule(handler, str(directory), recursive=recursive)
        observer.start()
        self._observer = observer

    def rebuild(self) -> bool:
        """Rebuild the site if its sources changed since the last build.

        Returns:
            True if a new build was swapped in.
        """
        if time.time() - self._last_rebuild_at < self._debounce_seconds:
            return False
        if not self._lock.acquire(blocking=False):
            return False
        try:
            signature = self._compute_signature()
            if signature is not None and signature == self._last_signature:
                return False
            logger.info("Sources changed; rebuilding")
            try:
                self._build_and_swap()
            except BuildError as exc:
                logger.error("Build failed: %s", exc)
                return False
            self._last_signature = signature
            return True
        finally:
            self._last_rebuild_at = time.time()
            self._lock.release()

    def _build_and_swap(self) -> None:
        if self._staging_dir.exists():
            shutil.rmtree(self._staging_dir)
        self._staging_dir.mkdir(parents=True)
        build_site(
            self.project_root,
            root_url=self._root_url,
            clean_output=True,
            output_dir_override=self._staging_dir,
        )
        self._activate_staging(self._staging_dir)

    def _activate_staging(self, staging: Path) -> None:
        retired = self.output_dir.with_name(self.output_dir.name + ".previous")
        if retired.exists():
            shutil.rmtree(retired)
        # os.replace cannot overwrite a non-empty directory
        if self.output_dir.exists():
            os.replace(self.output_dir, retired)
        os.replace(staging, self.output_dir)
        if retired.exists():
            shutil.rmtree(retired)

    def _iter_watched_files(self) -> Iterator[Path]:
        for directory, recursive in self._watch_targets():
            if not directory.is_dir():
                continue
            if recursive:
                yield from sorted(p for p in directory.rglob("*") if p.is_file())
            else:
                yield directory / ABOUT_FILENAME
                yield directory / CONFIG_FILENAME

    def _compute_signature(self) -> tuple | None:
        """Snapshot (path, mtime, size) of every watched file, or None if none exist."""
        snapshot = []
        for path in self._iter_watched_files():
            try:
                info = path.stat()
            except OSError:
                continue
            snapshot.append(
                (str(path.relative_to(self.project_root)), info.st_mtime_ns, info.st_size)
            )
        return tuple(snapshot) or None


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def _is_build_output(self, path: Path) -> bool:
        return any(
            path == root or root in path.parents
            for root in (self.server.output_dir, self.server._staging_dir)
        )

    def on_any_event(self, event):
        if event.is_directory:
            return
        if self._is_build_output(Path(event.src_path)):
            return
        self.server.rebuild()
