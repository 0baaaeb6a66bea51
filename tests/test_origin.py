"""
Tests for the world origin offset file.
"""

import json
import threading

import pytest

from webmap.origin import (
    ORIGIN_FILENAME,
    Vec3i,
    compute_origin_offset,
    origin_info_json,
    write_origin_info,
)


class TestComputeOffset:
    def test_example(self):
        assert compute_origin_offset((200, 100, 200), (120, 60, 90)) == Vec3i(20, 10, -10)

    def test_odd_sizes_truncate(self):
        assert compute_origin_offset((201, 255, 3), (0, 0, 0)) == Vec3i(-100, -127, -1)

    def test_negative_size_truncates_toward_zero(self):
        assert compute_origin_offset((-3, 0, 0), (0, 0, 0)) == Vec3i(1, 0, 0)

    def test_spawn_at_center(self):
        assert compute_origin_offset((1024000, 256, 1024000), (512000, 128, 512000)) == Vec3i(0, 0, 0)

    def test_wrong_length(self):
        with pytest.raises(ValueError):
            compute_origin_offset((1, 2), (1, 2, 3))


class TestJson:
    def test_compact(self):
        assert origin_info_json(Vec3i(20, 10, -10)) == '{"worldOriginOffset":[20,10,-10]}'


class TestWriteOriginInfo:
    def test_writes_exact_bytes(self, tmp_path):
        path = write_origin_info((200, 100, 200), (120, 60, 90), tmp_path, "data")
        assert path == tmp_path / "data" / ORIGIN_FILENAME
        assert path.read_bytes() == b'{"worldOriginOffset":[20,10,-10]}'

    def test_rewrite_overwrites(self, tmp_path):
        write_origin_info((200, 100, 200), (120, 60, 90), tmp_path)
        path = write_origin_info((200, 100, 200), (100, 50, 100), tmp_path)
        assert json.loads(path.read_text(encoding="utf-8")) == {"worldOriginOffset": [0, 0, 0]}

    def test_nested_data_dir(self, tmp_path):
        path = write_origin_info((2, 2, 2), (1, 1, 1), tmp_path, "api/data")
        assert path.parent == tmp_path / "api" / "data"

    def test_failure_is_logged_not_raised(self, tmp_path, caplog):
        blocker = tmp_path / "root"
        blocker.write_text("a file where the web-root should be")
        with caplog.at_level("ERROR", logger="webmap.origin"):
            assert write_origin_info((2, 2, 2), (1, 1, 1), blocker) is None
        assert ORIGIN_FILENAME in caplog.text

    def test_readers_never_see_partial_file(self, tmp_path):
        path = write_origin_info((0, 0, 0), (0, 0, 0), tmp_path)
        stop = threading.Event()
        bad = []

        def reader():
            while not stop.is_set():
                text = path.read_text(encoding="utf-8")
                try:
                    json.loads(text)["worldOriginOffset"]
                except (ValueError, KeyError):
                    bad.append(text)

        t = threading.Thread(target=reader)
        t.start()
        try:
            for i in range(300):
                write_origin_info((0, 0, 0), (i * 1000, -i, i), tmp_path)
        finally:
            stop.set()
            t.join()
        assert bad == []
