import io
from pathlib import Path

from inkwell.build import BuildError
from inkwell.server import DevServer, _ChangeHandler, _SiteHandler


class DummyEvent:
    def __init__(self, path, is_directory=False):
        self.src_path = path
        self.is_directory = is_directory


def make_handler(directory: Path, path: str):
    handler = _SiteHandler.__new__(_SiteHandler)
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
    handler.sent_headers = []
    handler.send_response = lambda code, message=None: handler.codes.append(code)
    handler.send_header = lambda key, value: handler.sent_headers.append((key, value))
    handler.end_headers = lambda: None
    handler.send_error = lambda code, message=None: handler.codes.append(("error", code))
    return handler


def test_handler_serves_directory_index(tmp_path):
    post_dir = tmp_path / "posts" / "hello"
    post_dir.mkdir(parents=True)
    (post_dir / "index.html").write_text("<p>hello</p>", encoding="utf-8")
    handler = make_handler(tmp_path, "/posts/hello")
    assert _SiteHandler.send_head(handler) is None
    assert handler.codes == [200]
    assert handler.wfile.getvalue() == b"<p>hello</p>"
    assert ("Content-Length", "12") in handler.sent_headers


def test_handler_missing_path_uses_custom_404(tmp_path):
    (tmp_path / "404.html").write_text("<p>oops</p>", encoding="utf-8")
    handler = make_handler(tmp_path, "/missing")
    assert _SiteHandler.send_head(handler) is None
    assert handler.codes == [404]
    assert handler.wfile.getvalue() == b"<p>oops</p>"


def test_handler_directory_without_index_is_404(tmp_path):
    (tmp_path / "posts").mkdir()
    handler = make_handler(tmp_path, "/posts/")
    assert _SiteHandler.send_head(handler) is None
    assert handler.codes == [("error", 404)]


def test_handler_falls_back_for_static_files(tmp_path):
    (tmp_path / "pygments.css").write_text(".highlight{}", encoding="utf-8")
    handler = make_handler(tmp_path, "/pygments.css")
    result = _SiteHandler.send_head(handler)
    assert result is not None
    assert result.read() == b".highlight{}"
    result.close()


def test_dev_server_config(tmp_path):
    (tmp_path / "inkwell.yaml").write_text("port: 4100\noutput_dir: site\n", encoding="utf-8")
    server = DevServer(tmp_path)
    assert server.http_port == 4100
    assert server.output_dir == tmp_path / "site"
    assert server._root_url == "http://localhost:4100"
    assert DevServer(tmp_path, http_port=5055).http_port == 5055


def test_change_handler_skips_output(tmp_path):
    server = DevServer(tmp_path)
    called = []
    server.rebuild = lambda: called.append(True)
    handler = _ChangeHandler(server)

    handler.on_any_event(DummyEvent(str(server.output_dir / "index.html")))
    handler.on_any_event(DummyEvent(str(server._staging_dir / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / "posts"), is_directory=True))
    assert called == []

    handler.on_any_event(DummyEvent(str(tmp_path / "posts" / "new.md")))
    assert called == [True]


def test_rebuild_swaps_staging_into_output(monkeypatch, tmp_path):
    server = DevServer(tmp_path)
    server.output_dir.mkdir()
    (server.output_dir / "stale.html").write_text("old", encoding="utf-8")
    server._compute_signature = lambda: ("sig",)
    called = {}

    def fake_build(root, root_url=None, clean_output=True, output_dir_override=None):
        called["root_url"] = root_url
        called["output_dir_override"] = output_dir_override
        (output_dir_override / "index.html").write_text("new", encoding="utf-8")

    monkeypatch.setattr("inkwell.server.build_site", fake_build)
    assert server.rebuild() is True
    assert called["root_url"] == "http://localhost:4000"
    assert called["output_dir_override"] == server._staging_dir
    assert server.output_dir.joinpath("index.html").read_text(encoding="utf-8") == "new"
    assert not server.output_dir.joinpath("stale.html").exists()
    assert not server._staging_dir.exists()


def test_rebuild_guard(monkeypatch, tmp_path):
    server = DevServer(tmp_path)
    server._debounce_seconds = 0.0
    calls = []
    monkeypatch.setattr(
        "inkwell.server.build_site", lambda *args, **kwargs: calls.append("built")
    )
    monkeypatch.setattr(server, "_activate_staging", lambda staging: calls.append("swapped"))
    sigs = [("a",), ("a",), ("b",)]
    server._compute_signature = lambda: sigs.pop(0) if sigs else ("b",)

    assert server.rebuild() is True
    server._lock.acquire()
    assert server.rebuild() is False  # skipped while another rebuild runs
    server._lock.release()
    assert server.rebuild() is False  # same signature
    assert server.rebuild() is True  # signature changed
    assert calls == ["built", "swapped", "built", "swapped"]


def test_rebuild_failure_keeps_previous_output(monkeypatch, tmp_path, caplog):
    server = DevServer(tmp_path)
    server.output_dir.mkdir()
    (server.output_dir / "index.html").write_text("good", encoding="utf-8")
    server._compute_signature = lambda: ("sig",)

    def failing_build(*args, **kwargs):
        raise BuildError(tmp_path / "posts" / "bad.md", "Invalid YAML front matter")

    monkeypatch.setattr("inkwell.server.build_site", failing_build)
    assert server.rebuild() is False
    assert server.output_dir.joinpath("index.html").read_text(encoding="utf-8") == "good"
    assert "Build failed" in caplog.text
    assert server._last_signature is None


def test_rebuild_survives_broken_config(tmp_path, caplog):
    config_path = tmp_path / "inkwell.yaml"
    config_path.write_text("title: Fine\n", encoding="utf-8")
    server = DevServer(tmp_path)
    config_path.write_text("workers: many\n", encoding="utf-8")
    assert server.rebuild() is False
    assert "Build failed" in caplog.text
    assert "workers" in caplog.text
    assert not server.output_dir.exists()


def test_compute_signature(tmp_path):
    server = DevServer(tmp_path)
    assert server._compute_signature() is None

    (tmp_path / "posts" / "nested").mkdir(parents=True)
    (tmp_path / "posts" / "a.md").write_text("a", encoding="utf-8")
    (tmp_path / "templates").mkdir()
    (tmp_path / "templates" / "post.html").write_text("t", encoding="utf-8")
    (tmp_path / "inkwell.yaml").write_text("title: x", encoding="utf-8")
    (tmp_path / "unrelated.txt").write_text("x", encoding="utf-8")

    names = [entry[0] for entry in server._compute_signature()]
    assert "posts/a.md" in names
    assert "templates/post.html" in names
    assert "inkwell.yaml" in names
    assert "unrelated.txt" not in names


def test_start_watcher_and_stop(monkeypatch, tmp_path):
    (tmp_path / "posts").mkdir()
    server = DevServer(tmp_path)
    scheduled = []

    class DummyObserver:
        def schedule(self, handler, path, recursive):
            scheduled.append((path, recursive))

        def start(self):
            scheduled.append("started")

        def stop(self):
            scheduled.append("stopped")

        def join(self):
            scheduled.append("joined")

    monkeypatch.setattr("inkwell.server.Observer", DummyObserver)
    server._start_watcher()
    assert (str(tmp_path / "posts"), True) in scheduled
    assert (str(tmp_path), False) in scheduled
    assert (str(tmp_path / "templates"), True) not in scheduled
    server.stop()
    assert scheduled[-2:] == ["stopped", "joined"]
    assert server._observer is None
