import pytest

from webmap.listener import WebMapListener


@pytest.fixture
def web_root(tmp_path):
    root = tmp_path / "webmap"
    (root / "tiles" / "0").mkdir(parents=True)
    (root / "index.html").write_bytes(b"<html><body>map</body></html>")
    (root / "tiles" / "0" / "0.png").write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(range(256)))
    return root


@pytest.fixture
def listener(web_root):
    lis = WebMapListener(web_root, poll_interval=0.05)
    lis.start("http://127.0.0.1:0/")
    yield lis
    lis.stop()
