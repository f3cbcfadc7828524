# test_region_detector.py
"""
Tests for the image wrapper, image sequences, the detection pipeline
and the command line
"""
import json
import os
import tempfile

import matplotlib
matplotlib.use('Agg')

import cv2
import numpy as np
import pytest

from window_detector.geometry import Rect
from window_detector.image import Image, ImageNotOpenError
from window_detector.image_sequence import ImageSequence
from window_detector.region_detector import RegionDetector, BackgroundError
import main


def create_test_image():
    """Black 80x80 image with a red 30x30 square at x=30..59, y=20..49"""
    img = np.zeros((80, 80, 3), dtype=np.uint8)
    img[20:50, 30:60] = (0, 0, 255)
    return img


def test_sequence_file_names():
    images = ImageSequence('frames', 'png', 'CAM-', '-orig', 3, 1, 3)

    assert [image.name for image in images] == [
        'CAM-001-orig.png', 'CAM-002-orig.png', 'CAM-003-orig.png'
    ]
    assert images[0].path == 'frames'

    # No padding
    images = ImageSequence('frames', 'jpg', num_digits=0, range_start=9, range_end=10)
    assert [image.name for image in images] == ['9.jpg', '10.jpg']

    assert len(ImageSequence()) == 0


def test_sequence_from_directory_and_run():
    with tempfile.TemporaryDirectory() as tmp:
        for name in ['b.png', 'a.png', 'notes.txt']:
            path = os.path.join(tmp, name)
            if name.endswith('.png'):
                cv2.imwrite(path, create_test_image())
            else:
                with open(path, 'w') as f:
                    f.write("not an image")

        images = ImageSequence.from_directory(tmp)
        assert [image.name for image in images] == ['a.png', 'b.png']

        seen = []
        images.run(lambda image: seen.append(image.name))
        assert seen == ['a.png', 'b.png']
        assert not images[0].is_open()


def test_image_open_and_save_patterns():
    with tempfile.TemporaryDirectory() as tmp:
        source = os.path.join(tmp, '001.png')
        cv2.imwrite(source, create_test_image())

        image = Image(source)
        assert image.name == '001.png'
        assert image.path == tmp
        assert image.expand_filename('out/%n') == 'out/001.png'
        assert image.expand_filename('%p/copy_%n') == os.path.join(tmp, 'copy_001.png')
        assert image.expand_filename('100%%_%n') == '100%_001.png'
        # Unknown codes and a trailing percent sign are kept as they are
        assert image.expand_filename('%x_%n_%') == '%x_001.png_%'
        assert image.expand_filename('%%n') == '%n'

        assert image.open()
        assert image.is_open()
        assert image.save('%p/copy_%n')
        assert os.path.exists(os.path.join(tmp, 'copy_001.png'))

        image.close()
        assert not image.is_open()
        with pytest.raises(ImageNotOpenError):
            image.image


def test_missing_image_does_not_open():
    image = Image('/nonexistent/frame.png')
    assert not image.open()

    with pytest.raises(ImageNotOpenError):
        image.save('out.png')


def test_threshold_with_predicate_and_mask():
    image = Image.from_array(create_test_image())

    mask = image.threshold(lambda px: px[..., 2] > 128)
    assert mask.dtype == np.uint8
    assert set(np.unique(mask)) == {0, 255}
    assert np.count_nonzero(mask) == 900

    # Restricted to the left half of the square
    restrict = np.zeros((80, 80), dtype=np.uint8)
    restrict[:, :45] = 255
    mask = image.threshold(lambda px: px[..., 2] > 128, mask=restrict)
    assert np.count_nonzero(mask) == 30 * 15

    # In HSV the red square has full saturation
    mask = image.threshold(lambda px: px[..., 1] > 200, cv2.COLOR_BGR2HSV)
    assert np.count_nonzero(mask) == 900


def test_threshold_and_paint():
    image = Image.from_array(create_test_image())

    image.threshold_and_paint(lambda px: px[..., 2] > 128, (255, 0, 0))

    assert tuple(image.image[25, 35]) == (255, 0, 0)
    assert tuple(image.image[0, 0]) == (0, 0, 0)


def test_apply_mask_and_highlight():
    image = Image.from_array(create_test_image())

    keep = np.zeros((80, 80), dtype=np.uint8)
    keep[:, :40] = 255
    image.apply_mask(keep)
    assert tuple(image.image[25, 50]) == (0, 0, 0)
    assert tuple(image.image[25, 35]) == (0, 0, 255)

    image = Image.from_array(np.zeros((40, 40, 3), dtype=np.uint8))
    image.highlight_objects([Rect(5, 5, 20, 20)], (0, 255, 0), 1)
    assert tuple(image.image[5, 10]) == (0, 255, 0)
    assert tuple(image.image[15, 15]) == (0, 0, 0)


def test_foreground_mask():
    background = np.zeros((60, 60, 3), dtype=np.uint8)
    frame = background.copy()
    frame[20:40, 20:40] = (255, 255, 255)

    subtractor = cv2.createBackgroundSubtractorMOG2(30, 16)
    subtractor.apply(background)

    image = Image.from_array(frame)
    mask = image.get_foreground_mask([subtractor])

    assert mask[30, 30] == 255
    assert mask[5, 5] == 0


def test_detector_finds_square():
    detector = RegionDetector()
    image = create_test_image()

    boxes, mask = detector.process_image(image)

    assert np.count_nonzero(mask) == 900
    assert len(boxes) == 1
    assert boxes[0].union_rect.intersects(Rect(30, 20, 30, 30))
    assert boxes[0].best_fill_ratio > detector.params['fill_threshold']
    # Window positions are multiples of 3, the best one covers 29 rows of it
    assert boxes[0].best_rect == Rect(30, 21, 30, 30)
    print(f"✓ Detected {boxes[0]}")


def test_detector_config_and_overrides():
    with tempfile.TemporaryDirectory() as tmp:
        config_path = os.path.join(tmp, 'config.json')
        with open(config_path, 'w') as f:
            json.dump({'fill_threshold': 55, 'window_width': 16, 'window_height': 16}, f)

        detector = RegionDetector(config_path)
        assert detector.params['fill_threshold'] == 55
        assert detector.window.width == 16
        assert detector.window.step_x == 2

        detector = RegionDetector(config_path, fill_threshold=70)
        assert detector.params['fill_threshold'] == 70

    # Missing config falls back to defaults
    detector = RegionDetector('does_not_exist.json')
    assert detector.params['fill_threshold'] == 30

    with pytest.raises(ValueError):
        RegionDetector(color_space='lab')


def test_detector_window_from_float_config():
    with tempfile.TemporaryDirectory() as tmp:
        config_path = os.path.join(tmp, 'config.json')
        with open(config_path, 'w') as f:
            json.dump({'window_width': 30.0, 'window_height': 30.0}, f)

        detector = RegionDetector(config_path)
        assert (detector.window.width, detector.window.step_x) == (30, 3)

        boxes, _ = detector.process_image(create_test_image())
        assert len(boxes) == 1

    # Fractional sizes fail when the detector is built, not during the scan
    with pytest.raises(ValueError):
        RegionDetector(window_width=30.5)


def test_detector_background_errors():
    detector = RegionDetector()

    with pytest.raises(BackgroundError):
        detector.learn_backgrounds(['/nonexistent/background.png'])


def create_background_pair():
    """
    Background with a static red patch, and a frame of the same scene
    with a red 30x30 object added at x=80..109, y=10..39
    """
    background = np.zeros((120, 120, 3), dtype=np.uint8)
    background[90:115, 0:25] = (0, 0, 255)

    frame = background.copy()
    frame[10:40, 80:110] = (0, 0, 255)
    return background, frame


def test_detector_removes_background():
    background, frame = create_background_pair()
    static_patch = Rect(0, 90, 25, 25)
    obj = Rect(80, 10, 30, 30)

    with tempfile.TemporaryDirectory() as tmp:
        background_path = os.path.join(tmp, 'background.png')
        cv2.imwrite(background_path, background)

        detector = RegionDetector()
        assert len(detector.learn_backgrounds([background_path])) == 1

        boxes, mask = detector.process_image(frame)

    # The patch passes the color range but is part of the background
    assert mask[100, 10] == 0
    assert mask[25, 95] == 255
    assert np.count_nonzero(mask) == 900

    assert len(boxes) == 1
    assert boxes[0].union_rect.intersects(obj)
    assert not boxes[0].union_rect.intersects(static_patch)

    # Without a background model both red regions are detected
    boxes, _ = RegionDetector().process_image(frame)
    assert len(boxes) == 2
    print("✓ Static background region masked out")


def test_detector_outputs():
    detector = RegionDetector(consolidate=True)
    image = create_test_image()
    boxes, mask = detector.process_image(image)

    vis = detector.visualize_results(image, boxes)
    assert vis.shape == image.shape
    assert not np.array_equal(vis, image)
    assert np.array_equal(image, create_test_image())

    with tempfile.TemporaryDirectory() as tmp:
        result_file = detector.save_results('square', boxes, tmp)
        with open(result_file) as f:
            text = f.read()
        assert "Object 1:" in text
        assert "Objects: 1" in text

        plot_path = os.path.join(tmp, 'plot.png')
        detector.plot_detections(image, mask, boxes, plot_path)
        assert os.path.exists(plot_path)


def test_command_line_run():
    with tempfile.TemporaryDirectory() as tmp:
        input_dir = os.path.join(tmp, 'input')
        output_dir = os.path.join(tmp, 'output')
        os.makedirs(input_dir)
        for number in (1, 2):
            cv2.imwrite(os.path.join(input_dir, f'{number:03d}.png'), create_test_image())

        ret = main.main([input_dir, '-e', 'png', '-d', '3', '-f', '1', '-t', '2',
                         '-o', output_dir, '--config', os.path.join(tmp, 'none.json')])

        assert ret == 0
        assert os.path.exists(os.path.join(output_dir, '001.png'))
        assert os.path.exists(os.path.join(output_dir, '002_results.txt'))

        # The saved image carries the highlight
        saved = cv2.imread(os.path.join(output_dir, '001.png'))
        assert not np.array_equal(saved, create_test_image())


def test_command_line_with_background():
    background, frame = create_background_pair()

    with tempfile.TemporaryDirectory() as tmp:
        input_dir = os.path.join(tmp, 'input')
        output_dir = os.path.join(tmp, 'output')
        os.makedirs(input_dir)
        background_path = os.path.join(tmp, 'background.png')
        cv2.imwrite(background_path, background)
        cv2.imwrite(os.path.join(input_dir, 'frame.png'), frame)

        ret = main.main([input_dir, '-o', output_dir, '-b', background_path,
                         '--config', os.path.join(tmp, 'none.json')])

        assert ret == 0
        with open(os.path.join(output_dir, 'frame_results.txt')) as f:
            text = f.read()

    # Only the added object is reported, the static patch is background
    assert "Objects: 1" in text


def test_command_line_missing_input():
    assert main.main(['/nonexistent/input', '-o', '']) == 1


if __name__ == "__main__":
    test_sequence_file_names()
    test_sequence_from_directory_and_run()
    test_image_open_and_save_patterns()
    test_missing_image_does_not_open()
    test_threshold_with_predicate_and_mask()
    test_threshold_and_paint()
    test_apply_mask_and_highlight()
    test_foreground_mask()
    test_detector_finds_square()
    test_detector_config_and_overrides()
    test_detector_window_from_float_config()
    test_detector_background_errors()
    test_detector_removes_background()
    test_detector_outputs()
    test_command_line_run()
    test_command_line_with_background()
    test_command_line_missing_input()
    print("All pipeline tests passed!")
