# window_detector/image.py
"""
Image file wrapper: loading, thresholding, background removal and
highlighting of detected objects
"""
import os
import re

import numpy as np
import cv2

from .bounding_box import BoundingBox

# BGR, OpenCV default
RED = (0, 0, 255)
GREEN = (0, 255, 0)
BLUE = (255, 0, 0)


class ImageNotOpenError(RuntimeError):
    """Pixel data was requested from an image that is not opened"""


class Image:
    """One image file, loaded lazily with open()"""

    def __init__(self, filename):
        self.filename = str(filename)
        self.path, self.name = os.path.split(self.filename)
        self._image = None

    @classmethod
    def from_array(cls, array, filename='image.png'):
        """Wrap an already loaded BGR array"""
        image = cls(filename)
        image.replace_image(array)
        return image

    def open(self):
        """Load the image, returns False if it cannot be read"""
        if self._image is not None:
            return True

        image = cv2.imread(self.filename)
        if image is None:
            return False

        self._image = image
        return True

    def close(self):
        self._image = None

    def is_open(self):
        return self._image is not None

    @property
    def image(self):
        self._assert_is_open()
        return self._image

    def _assert_is_open(self):
        if self._image is None:
            raise ImageNotOpenError(f"Image {self.filename} is not opened")

    def show(self, name):
        self._assert_is_open()
        cv2.namedWindow(name)
        cv2.imshow(name, self._image)

    def show_and_wait(self, name):
        self.show(name)
        cv2.waitKey()
        cv2.destroyWindow(name)

    def expand_filename(self, pattern):
        """
        Substitute %n with the image name, %p with its directory and %%
        with a literal percent sign
        """
        codes = {'n': self.name, 'p': self.path, '%': '%'}
        return re.sub(r'%([np%])', lambda m: codes[m.group(1)], pattern)

    def save(self, pattern):
        """Write the image to pattern (see expand_filename)"""
        self._assert_is_open()
        return bool(cv2.imwrite(self.expand_filename(pattern), self._image))

    def replace_image(self, new_image):
        self._image = new_image

    def apply_mask(self, mask):
        """Zero every pixel outside mask"""
        self._assert_is_open()
        self._image = cv2.bitwise_and(self._image, self._image, mask=mask)

    def get_foreground_mask(self, subtractors, learning_rate=0.00001):
        """
        Foreground mask against one or more background subtractors

        Args:
            subtractors: cv2.BackgroundSubtractor or a list of them
            learning_rate: how much this frame updates the models

        Returns:
            uint8 mask, 255 where every subtractor reports foreground
        """
        self._assert_is_open()

        if not isinstance(subtractors, (list, tuple)):
            subtractors = [subtractors]

        height, width = self._image.shape[:2]
        mask = np.full((height, width), 255, dtype=np.uint8)
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (5, 5))

        for subtractor in subtractors:
            fg = subtractor.apply(self._image, learningRate=learning_rate)

            # MOG2 marks shadows with 127, those are background for us
            fg = np.where(fg == 255, 255, 0).astype(np.uint8)
            fg = cv2.morphologyEx(fg, cv2.MORPH_OPEN, kernel)
            mask &= fg

        return mask

    def _converted(self, convert_to):
        if convert_to is None:
            return self._image
        return cv2.cvtColor(self._image, convert_to)

    def threshold(self, predicate, convert_to=None, mask=None):
        """
        Binary mask of the pixels accepted by predicate

        Args:
            predicate: callable taking the (H, W, C) pixel array and
                       returning a boolean (H, W) array
            convert_to: cv2.COLOR_* code applied before the predicate
            mask: only pixels non-zero in this mask can be accepted

        Returns:
            uint8 mask with values 0 and 255
        """
        self._assert_is_open()

        accepted = np.asarray(predicate(self._converted(convert_to)), dtype=bool)
        if mask is not None:
            accepted = accepted & (np.asarray(mask) > 0)

        return accepted.astype(np.uint8) * 255

    def threshold_and_paint(self, predicate, color, convert_to=None, mask=None):
        """Like threshold() but also paints accepted pixels with color"""
        result = self.threshold(predicate, convert_to, mask)
        self._image[result > 0] = color
        return result

    def highlight_objects(self, objects, color=RED, thickness=2):
        """Draw BoundingBox union rectangles or plain Rects into the image"""
        self._assert_is_open()

        for obj in objects:
            rect = obj.union_rect if isinstance(obj, BoundingBox) else obj
            x1, y1, x2, y2 = rect.corners()
            cv2.rectangle(self._image, (x1, y1), (x2, y2), color, thickness)

    def __repr__(self):
        return f"Image({self.filename!r})"
