from __future__ import annotations

import pytest

from pitak.errors import InvalidFileError
from pitak.slips import LocalSlipStorage, SlipUpload


async def test_save_names_file_after_order_and_time(tmp_path):
    storage = LocalSlipStorage(str(tmp_path / "up"), "https://pitak.example/")
    url = await storage.save("A100", SlipUpload("IMG_01.JPG", b"jpegdata"), now_ms=1700000000000)

    assert url == "https://pitak.example/uploads/A100-1700000000000.jpg"
    assert (tmp_path / "up" / "A100-1700000000000.jpg").read_bytes() == b"jpegdata"


async def test_save_sanitizes_order_id(tmp_path):
    storage = LocalSlipStorage(str(tmp_path))
    url = await storage.save("../A/1", SlipUpload("s.pdf", b"%PDF"), now_ms=1)
    assert url == "/uploads/___A_1-1.pdf"


@pytest.mark.parametrize(
    "slip",
    [
        SlipUpload("slip.gif", b"GIF89a"),
        SlipUpload("slip", b"data"),
        SlipUpload("slip.png", b""),
        SlipUpload("slip.png", b"x" * 11),
    ],
)
def test_check_rejects(tmp_path, slip):
    storage = LocalSlipStorage(str(tmp_path), max_bytes=10)
    with pytest.raises(InvalidFileError):
        storage.check(slip)


class _Incoming:
    def __init__(self, filename, data, content_type="image/png"):
        self.filename = filename
        self.content_type = content_type
        self.data = data
        self.sizes = []

    async def read(self, size=-1):
        self.sizes.append(size)
        return self.data if size < 0 else self.data[:size]


async def test_read_stops_one_byte_past_limit(tmp_path):
    storage = LocalSlipStorage(str(tmp_path), max_bytes=10)
    incoming = _Incoming("slip.png", b"x" * 1000)

    slip = await storage.read(incoming)

    assert incoming.sizes == [11]
    assert len(slip.content) == 11
    assert slip.filename == "slip.png" and slip.content_type == "image/png"
    with pytest.raises(InvalidFileError):
        storage.check(slip)


async def test_remove_deletes_saved_file(tmp_path):
    storage = LocalSlipStorage(str(tmp_path), "https://pitak.example")
    url = await storage.save("A100", SlipUpload("s.jpg", b"jpeg"), now_ms=5)

    storage.remove(url)
    storage.remove(url)

    assert list(tmp_path.iterdir()) == []
