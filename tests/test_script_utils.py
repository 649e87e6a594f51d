"""
Script and CLI tests. The camera is never opened: ``open_camera`` is patched.
"""

import io
import unittest
from contextlib import redirect_stdout
from unittest import mock

from particlemorph import script_utils
from particlemorph.landmarks import FaceLandmarkSource
from particlemorph.script_utils import (
    KeyboardBreakSignal,
    keyboard_feature_vector,
    particlemorph_cli,
    print_json_if_possible,
    resolve_source_factory,
    run_particlemorph,
)
from particlemorph.signals import TrackingStatus
from particlemorph.util import CameraOpenError


class TestKeyboard(unittest.TestCase):
    def test_no_key(self):
        fv = keyboard_feature_vector(0xFF)
        self.assertEqual(fv['key_code'], 0xFF)
        self.assertFalse(fv['key_pressed'])

    def test_key(self):
        self.assertTrue(keyboard_feature_vector(ord('a'))['key_pressed'])

    def test_break_keys(self):
        for key in (27, ord('q')):
            with self.subTest(key=key):
                with self.assertRaises(KeyboardBreakSignal):
                    keyboard_feature_vector(key)


class TestLogging(unittest.TestCase):
    def test_print_json_if_possible(self):
        out = io.StringIO()
        with redirect_stdout(out):
            print_json_if_possible({'tension': 0.5, 'detected': True})
            print_json_if_possible({1, 2})
        lines = out.getvalue().splitlines()
        self.assertEqual(lines[0], '{"tension": 0.5, "detected": true}')
        self.assertEqual(lines[1], '{1, 2}')


class TestRun(unittest.TestCase):
    def test_resolve_source_factory(self):
        self.assertIs(resolve_source_factory('face'), FaceLandmarkSource)
        with self.assertRaises(ValueError):
            resolve_source_factory('feet')

    def test_camera_unavailable(self):
        statuses = []
        with mock.patch.object(
            script_utils, 'open_camera', side_effect=CameraOpenError('no camera')
        ):
            state = run_particlemorph(
                log_status=lambda status, message='': statuses.append(
                    (status, message)
                )
            )
        self.assertIs(state.status, TrackingStatus.UNAVAILABLE)
        self.assertEqual(state.status_message, 'no camera')
        self.assertFalse(state.signal.detected)
        self.assertEqual(statuses, [(TrackingStatus.UNAVAILABLE, 'no camera')])


class TestCli(unittest.TestCase):
    def test_list_presets(self):
        out = io.StringIO()
        with redirect_stdout(out):
            particlemorph_cli(list_presets=True)
        text = out.getvalue()
        self.assertIn('face', text)
        self.assertIn('hand', text)

    def test_reports_frame_count(self):
        out = io.StringIO()
        with mock.patch.object(
            script_utils, 'open_camera', side_effect=CameraOpenError('no camera')
        ), redirect_stdout(out):
            particlemorph_cli(tracker='hand', activation_delay=1.0)
        self.assertIn('Processed 0 frames (unavailable)', out.getvalue())


if __name__ == "__main__":
    unittest.main()
