import numpy as np
import pytest

from raw_bridge.engine import LIBRAW_DATA_ERROR, LIBRAW_FILE_UNSUPPORTED, LIBRAW_NO_THUMBNAIL
from raw_bridge.exceptions import (
    EngineOpenError,
    ProcessError,
    SessionClosedError,
    ThumbnailError,
    UnpackError,
)
from raw_bridge.imgdata import ProcessedImage, ThumbnailInfo
from raw_bridge.pipeline import PipelineState
from raw_bridge.resources import AllocationTracker
from raw_bridge.session import RawSession

from conftest import StubEngine


class TestOpen:

    def test_open_copies_buffer_into_session(self, make_session, tracker):
        session, engine = make_session()
        source = bytearray(b"RAWDATA")
        session.open(memoryview(source)[1:5])

        source[:] = b"XXXXXXX"
        assert engine.opened_with == b"AWDA"
        assert session.input_size == 4
        assert tracker.live('input') == 1

    def test_open_failure_raises_with_code(self, make_session, make_engine, tracker):
        session, engine = make_session(make_engine(open_code=LIBRAW_FILE_UNSUPPORTED))

        with pytest.raises(EngineOpenError) as excinfo:
            session.open(b"not a raw")

        assert excinfo.value.code == LIBRAW_FILE_UNSUPPORTED
        assert session.input_size == 0
        assert tracker.live('input') == 0

    def test_session_reusable_after_failed_open(self, make_session, make_engine):
        session, engine = make_session(make_engine(open_code=-1))
        with pytest.raises(EngineOpenError):
            session.open(b"bad")

        engine.open_code = 0
        session.open(b"good")
        assert session.input_size == 4

    def test_failed_open_keeps_applied_settings(self, make_session, make_engine):
        session, _ = make_session(make_engine(open_code=-1))
        with pytest.raises(EngineOpenError):
            session.open(b"bad", {'outputBps': 16})
        assert session.params.output_bps == 16

    def test_open_recycles_engine_first(self, make_session):
        session, engine = make_session()
        session.open(b"abc")
        assert engine.calls == ['recycle', 'open_buffer']

    def test_reopen_replaces_previous_input(self, make_session, tracker):
        session, engine = make_session()
        session.open(b"first")
        session.open(b"second!")
        assert engine.opened_with == b"second!"
        assert tracker.live('input') == 1
        assert tracker.total_released == 1

    def test_params_reflect_only_latest_settings(self, make_session):
        session, _ = make_session()
        session.open(b"a", {'outputBps': 16, 'halfSize': 1})
        session.open(b"b", {'bright': 2.0})

        assert session.params.output_bps == 8
        assert session.params.half_size == 0
        assert session.params.bright == 2.0

    def test_reopen_releases_owned_strings(self, make_session, tracker):
        session, _ = make_session()
        session.open(b"a", {'outputProfile': 'srgb.icc', 'badPixels': 'bad.txt'})
        assert tracker.live('string') == 2

        session.open(b"b", {'cameraProfile': 'cam.dcp'})
        assert tracker.live('string') == 1
        assert session.params.output_profile.value is None
        assert session.params.camera_profile.value == 'cam.dcp'

    def test_open_rejects_non_buffer(self, make_session):
        session, _ = make_session()
        with pytest.raises(TypeError):
            session.open(12345)


class TestImageData:

    def test_renders_8bit_image(self, make_session):
        session, engine = make_session()
        session.open(b"raw")

        image = session.image_data()

        assert image['width'] == 2
        assert image['height'] == 1
        assert image['colors'] == 3
        assert image['bits'] == 8
        assert image['dataSize'] == 6
        assert image['data'].dtype == np.uint8
        assert image['data'].tolist() == [0, 1, 2, 3, 4, 5]
        assert session.pipeline_state is PipelineState.PROCESSED

    def test_renders_16bit_image(self, make_session, make_engine):
        pixels = np.array([1, 256, 65535], dtype=np.uint16)
        rendered = ProcessedImage(
            width=1, height=1, colors=3, bits=16, data_size=6, data=pixels.tobytes(),
        )
        session, _ = make_session(make_engine(rendered=rendered))
        session.open(b"raw")

        image = session.image_data()

        assert image['data'].dtype == np.uint16
        assert image['data'].tolist() == [1, 256, 65535]

    def test_output_does_not_alias_engine_buffer(self, make_session):
        session, engine = make_session()
        session.open(b"raw")

        image = session.image_data()

        # 引擎缓冲已经交还
        assert engine.counts['dcraw_clear_mem'] == 1
        assert engine.cleared[0].data == b''
        assert image['data'].tolist() == [0, 1, 2, 3, 4, 5]

    def test_unpack_and_process_run_once(self, make_session):
        session, engine = make_session()
        session.open(b"raw")

        session.image_data()
        session.image_data()

        assert engine.counts['unpack'] == 1
        assert engine.counts['dcraw_process'] == 1
        assert engine.counts['dcraw_make_mem_image'] == 2
        assert engine.counts['dcraw_clear_mem'] == 2

    def test_process_receives_session_params(self, make_session):
        session, engine = make_session()
        session.open(b"raw", {'outputBps': 16})
        session.image_data()
        assert engine.last_params is session.params
        assert engine.last_params.output_bps == 16

    def test_unpack_failure_is_not_retried(self, make_session, make_engine):
        session, engine = make_session(make_engine(unpack_code=LIBRAW_DATA_ERROR))
        session.open(b"raw")

        with pytest.raises(UnpackError) as excinfo:
            session.image_data()
        assert excinfo.value.code == LIBRAW_DATA_ERROR
        assert session.unpacked
        assert engine.counts['dcraw_process'] == 0

        # 已尝试过解包：第二次直接请求渲染
        image = session.image_data()
        assert engine.counts['unpack'] == 1
        assert engine.counts['dcraw_process'] == 0
        assert image is not None

    def test_process_failure_is_not_retried(self, make_session, make_engine):
        session, engine = make_session(make_engine(process_code=-1))
        session.open(b"raw")

        with pytest.raises(ProcessError) as excinfo:
            session.image_data()
        assert excinfo.value.code == -1
        assert session.pipeline_state is PipelineState.UNPACKED

        session.image_data()
        assert engine.counts['unpack'] == 1
        assert engine.counts['dcraw_process'] == 1

    def test_reopen_resets_unpacked_flag(self, make_session):
        session, engine = make_session()
        session.open(b"raw")
        session.image_data()
        assert session.unpacked

        session.open(b"raw2")
        assert not session.unpacked
        assert session.pipeline_state is PipelineState.OPENED

        session.image_data()
        assert engine.counts['unpack'] == 2

    def test_null_render_returns_none(self, make_session, make_engine):
        session, engine = make_session(make_engine(render_none=True))
        session.open(b"raw")

        assert session.image_data() is None
        assert engine.counts['dcraw_clear_mem'] == 0

    def test_pipeline_failure_is_logged(self, make_session, make_engine):
        from raw_bridge.logger import Logger

        messages = []
        session, _ = make_session(make_engine(unpack_code=-1), logger=Logger(messages.append))
        session.open(b"raw")
        with pytest.raises(UnpackError):
            session.image_data()
        assert any("unpack() failed" in m for m in messages)


class TestThumbnailData:

    def test_returns_thumbnail_bytes(self, make_session, make_engine):
        thumb = ThumbnailInfo(tformat=1, twidth=160, theight=120, tlength=4, thumb=b"\xff\xd8\xff\xd9")
        session, _ = make_session(make_engine(thumbnail=thumb))
        session.open(b"raw")

        result = session.thumbnail_data()

        assert result['format'] == 'jpeg'
        assert result['width'] == 160
        assert result['height'] == 120
        assert result['data'].dtype == np.uint8
        assert result['data'].tobytes() == b"\xff\xd8\xff\xd9"

    def test_unpacks_thumbnail_on_every_call(self, make_session, make_engine):
        thumb = ThumbnailInfo(tformat=2, twidth=1, theight=1, tlength=3, thumb=b"\x01\x02\x03")
        session, engine = make_session(make_engine(thumbnail=thumb))
        session.open(b"raw")

        session.thumbnail_data()
        session.thumbnail_data()
        assert engine.counts['unpack_thumb'] == 2

    def test_thumbnail_independent_of_pipeline(self, make_session, make_engine):
        thumb = ThumbnailInfo(tformat=1, thumb=b"\xff\xd8")
        session, engine = make_session(make_engine(thumbnail=thumb))
        session.open(b"raw")

        session.thumbnail_data()
        assert engine.counts['unpack'] == 0
        assert not session.unpacked

    def test_unknown_format_name(self, make_session, make_engine):
        thumb = ThumbnailInfo(tformat=5, thumb=b"\x00")
        session, _ = make_session(make_engine(thumbnail=thumb))
        session.open(b"raw")
        assert session.thumbnail_data()['format'] == 'unknown'

    def test_engine_error_raises(self, make_session, make_engine):
        session, _ = make_session(make_engine(thumb_code=LIBRAW_NO_THUMBNAIL))
        session.open(b"raw")

        with pytest.raises(ThumbnailError) as excinfo:
            session.thumbnail_data()
        assert excinfo.value.code == LIBRAW_NO_THUMBNAIL
        assert "Failed to unpack thumbnail" in str(excinfo.value)

    def test_missing_thumbnail_data_raises(self, make_session):
        session, _ = make_session()
        session.open(b"raw")

        with pytest.raises(ThumbnailError) as excinfo:
            session.thumbnail_data()
        assert excinfo.value.code == LIBRAW_NO_THUMBNAIL


class TestMetadata:

    def test_metadata_reads_engine_state(self, make_session, make_engine, canon_imgdata):
        session, engine = make_session(make_engine(imgdata=canon_imgdata))
        session.open(b"raw")

        meta = session.metadata()
        assert meta['camera_make'] == 'Canon'
        assert 'canon' not in meta

        full = session.metadata(full_output=True)
        assert 'canon' in full
        assert engine.counts['unpack'] == 0


class TestTeardown:

    def test_context_manager_releases_everything(self, make_session, tracker):
        session, engine = make_session()
        with session:
            session.open(b"raw", {'outputProfile': 'a.icc', 'darkFrame': 'dark.pgm'})
            assert tracker.live() == 3

        assert engine.calls[-2:] == ['recycle', 'close']
        assert tracker.live() == 0
        assert session.closed

    def test_teardown_order_engine_input_strings(self):
        events = []

        class RecordingTracker(AllocationTracker):
            def release(self, kind):
                events.append(kind)
                super().release(kind)

        class RecordingEngine(StubEngine):
            def close(self):
                events.append('close')
                super().close()

        session = RawSession(engine=RecordingEngine(), tracker=RecordingTracker())
        session.open(b"raw", {'outputProfile': 'a.icc', 'badPixels': 'bp.txt'})
        events.clear()

        with session:
            pass

        assert events == ['close', 'input', 'string', 'string']

    def test_teardown_is_idempotent(self, make_session):
        session, engine = make_session()
        session.open(b"raw")

        session.__exit__(None, None, None)
        session.__exit__(None, None, None)

        assert engine.counts['close'] == 1

    def test_teardown_without_open(self, make_session, tracker):
        session, engine = make_session()
        with session:
            pass
        assert engine.counts['close'] == 1
        assert tracker.total_released == 0

    def test_use_after_teardown_raises(self, make_session):
        session, _ = make_session()
        with session:
            session.open(b"raw")

        with pytest.raises(SessionClosedError):
            session.metadata()
        with pytest.raises(SessionClosedError):
            session.open(b"raw")
        with pytest.raises(SessionClosedError):
            session.image_data()
        with pytest.raises(SessionClosedError):
            session.thumbnail_data()

    def test_garbage_collection_tears_down(self, make_session, tracker):
        session, engine = make_session()
        session.open(b"raw", {'badPixels': 'bp.txt'})

        session.__del__()

        assert engine.counts['close'] == 1
        assert tracker.live() == 0
