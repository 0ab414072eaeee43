import sys
from collections import Counter
from pathlib import Path
from typing import List, Optional

import pytest

# Ensure the repository's src directory is importable for package imports
_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from raw_bridge.imgdata import ImageData, ProcessedImage, ThumbnailInfo  # noqa: E402
from raw_bridge.resources import AllocationTracker  # noqa: E402
from raw_bridge.session import RawSession  # noqa: E402


class StubEngine:
    """Scriptable engine: every stage returns a configured status code and records the call."""

    def __init__(
        self,
        imgdata: Optional[ImageData] = None,
        open_code: int = 0,
        unpack_code: int = 0,
        process_code: int = 0,
        thumb_code: int = 0,
        rendered: Optional[ProcessedImage] = None,
        render_none: bool = False,
        thumbnail: Optional[ThumbnailInfo] = None,
    ):
        self._imgdata = imgdata if imgdata is not None else ImageData()
        self.open_code = open_code
        self.unpack_code = unpack_code
        self.process_code = process_code
        self.thumb_code = thumb_code
        self.rendered = rendered if rendered is not None else ProcessedImage(
            width=2, height=1, colors=3, bits=8, data_size=6, data=bytes(range(6)),
        )
        self.render_none = render_none
        self.thumbnail = thumbnail
        self.calls: List[str] = []
        self.counts = Counter()
        self.opened_with: Optional[bytes] = None
        self.last_params = None
        self.cleared: List[ProcessedImage] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        self.counts[name] += 1

    @property
    def imgdata(self) -> ImageData:
        return self._imgdata

    def open_buffer(self, data):
        self._record('open_buffer')
        self.opened_with = data
        return self.open_code

    def unpack(self):
        self._record('unpack')
        return self.unpack_code

    def dcraw_process(self, params):
        self._record('dcraw_process')
        self.last_params = params
        return self.process_code

    def dcraw_make_mem_image(self):
        self._record('dcraw_make_mem_image')
        if self.render_none:
            return None
        r = self.rendered
        # 每次渲染都是新的引擎缓冲
        return ProcessedImage(r.width, r.height, r.colors, r.bits, r.data_size, bytearray(r.data))

    def dcraw_clear_mem(self, image):
        self._record('dcraw_clear_mem')
        self.cleared.append(image)
        image.data = b''

    def unpack_thumb(self):
        self._record('unpack_thumb')
        if self.thumb_code == 0 and self.thumbnail is not None:
            self._imgdata.thumbnail = self.thumbnail
        return self.thumb_code

    def recycle(self):
        self._record('recycle')

    def close(self):
        self._record('close')


@pytest.fixture
def tracker():
    return AllocationTracker()


@pytest.fixture
def make_engine():
    """Factory fixture for StubEngine instances."""

    def _make(**kwargs) -> StubEngine:
        return StubEngine(**kwargs)

    return _make


@pytest.fixture
def make_session(tracker):
    """Factory fixture: (session, engine) pair sharing the test's allocation tracker."""

    def _make(engine: Optional[StubEngine] = None, logger=None):
        engine = engine if engine is not None else StubEngine()
        return RawSession(engine=engine, logger=logger, tracker=tracker), engine

    return _make


@pytest.fixture
def canon_imgdata():
    data = ImageData()
    data.idata.make = 'Canon'
    data.idata.model = 'EOS R5'
    data.sizes.width = 6000
    data.sizes.height = 4000
    data.sizes.raw_width = 6144
    data.sizes.raw_height = 4096
    data.other.iso_speed = 100.0
    data.other.timestamp = 1600000000
    data.thumbnail.tformat = 1
    data.thumbnail.twidth = 160
    data.thumbnail.theight = 120
    return data
