import numpy as np
import pytest

from raw_bridge.logger import Logger
from raw_bridge.params import CBLACK_UNSET, UINT_MAX, OutputParams
from raw_bridge.settings import RECOGNIZED_KEYS, apply_settings


@pytest.fixture
def params(tracker):
    return OutputParams.defaults(tracker)


def test_defaults_match_engine_defaults(params):
    assert params.greybox == (0, 0, UINT_MAX, UINT_MAX)
    assert params.cropbox == (0, 0, UINT_MAX, UINT_MAX)
    assert params.gamm == (0.45, 4.5, 0.0, 0.0, 0.0, 0.0)
    assert params.user_cblack == (CBLACK_UNSET,) * 4
    assert params.output_bps == 8
    assert params.user_qual == -1
    assert params.use_camera_matrix == 1
    assert params.output_profile.value is None
    assert params.changed_fields() == {}


@pytest.mark.parametrize("raw_config", [None, [1, 2, 3], "outputBps", 42])
def test_non_mapping_config_is_noop(params, raw_config):
    assert apply_settings(params, raw_config) is params
    assert params.changed_fields() == {}


def test_scalars_are_applied(params):
    apply_settings(params, {'outputBps': 16, 'bright': 1.5, 'useCameraWb': True, 'userQual': 3})
    assert params.output_bps == 16
    assert params.bright == 1.5
    assert params.use_camera_wb == 1
    assert params.user_qual == 3


def test_float_for_int_field_is_truncated(params):
    apply_settings(params, {'outputBps': 16.9, 'medPasses': -2.5})
    assert params.output_bps == 16
    assert params.med_passes == -2


def test_numeric_strings_are_ignored(params):
    apply_settings(params, {'bright': '2.0', 'outputBps': '16'})
    assert params.bright == 1.0
    assert params.output_bps == 8


def test_none_values_are_skipped(params):
    apply_settings(params, {'outputBps': None, 'gamm': None, 'outputProfile': None})
    assert params.changed_fields() == {}


def test_arrays_of_exact_arity_are_applied(params):
    apply_settings(params, {
        'gamm': [0.5, 3.0, 0, 0, 0, 0],
        'cropbox': (10, 20, 300, 400),
        'userMul': np.array([2.0, 1.0, 1.5, 1.0]),
    })
    assert params.gamm == (0.5, 3.0, 0.0, 0.0, 0.0, 0.0)
    assert params.cropbox == (10, 20, 300, 400)
    assert params.user_mul == (2.0, 1.0, 1.5, 1.0)


@pytest.mark.parametrize("value", [
    [1, 2, 3],
    [1, 2, 3, 4, 5],
    [1, 'x', 3, 4],
    "1234",
    {'a': 1, 'b': 2, 'c': 3, 'd': 4},
    7,
])
def test_malformed_arrays_are_ignored_whole(params, value):
    apply_settings(params, {'greybox': value})
    assert params.greybox == (0, 0, UINT_MAX, UINT_MAX)


def test_bad_field_does_not_stop_others(params):
    apply_settings(params, {'aber': [1, 2], 'outputBps': 16, 'bright': 'x', 'halfSize': 1})
    assert params.aber == (1.0, 1.0, 1.0, 1.0)
    assert params.output_bps == 16
    assert params.half_size == 1


def test_strings_are_owned_by_params(params, tracker):
    apply_settings(params, {'outputProfile': 'srgb.icc', 'darkFrame': 'dark.pgm'})
    assert params.output_profile.value == 'srgb.icc'
    assert params.output_profile.buffer == b'srgb.icc\x00'
    assert params.dark_frame.value == 'dark.pgm'
    assert tracker.live('string') == 2


def test_reassigning_string_releases_previous(params, tracker):
    apply_settings(params, {'badPixels': 'one.txt'})
    apply_settings(params, {'badPixels': 'two.txt'})
    assert params.bad_pixels.value == 'two.txt'
    assert tracker.live('string') == 1
    assert tracker.total_released == 1


def test_empty_string_clears_field(params, tracker):
    apply_settings(params, {'cameraProfile': 'cam.dcp'})
    apply_settings(params, {'cameraProfile': ''})
    assert params.camera_profile.value is None
    assert not params.camera_profile
    assert tracker.live('string') == 0


def test_non_string_for_string_field_is_ignored(params):
    apply_settings(params, {'outputProfile': 5, 'cameraProfile': b'bytes'})
    assert params.output_profile.value is None
    assert params.camera_profile.value is None


def test_unknown_keys_are_reported(params):
    messages = []
    logger = Logger(messages.append, min_level='DEBUG')

    apply_settings(params, {'outputBps': 16, 'sharpen': 3, 'greybox': [1]}, logger)

    assert params.output_bps == 16
    assert any("sharpen" in m for m in messages)
    assert any("'greybox'" in m for m in messages)


def test_recognized_keys_cover_all_settings():
    assert len(RECOGNIZED_KEYS) == 40
    assert {'outputBps', 'userCblack', 'darkFrame', 'noInterpolation'} <= RECOGNIZED_KEYS
