# window_detector/integral_image.py
import numpy as np
import cv2

ON_VALUE = 255


class InvalidFormatError(ValueError):
    """Raised when a mask is not a two-valued 8-bit raster"""


class SummedAreaTable:
    """Integral image of a binary mask for O(1) on-pixel counts"""

    def __init__(self, mask=None):
        """
        Compute summed area table of a binary mask

        Args:
            mask: 2D numpy array (height, width) holding only 0 and 255,
                  or a boolean array. None gives a table that answers
                  every query with 0.0

        Raises:
            InvalidFormatError: mask is not a strict binary 8-bit raster
        """
        self.integral = None
        self.height, self.width = 0, 0

        if mask is None:
            return

        mask = np.asarray(mask)
        if mask.ndim != 2:
            raise InvalidFormatError("Mask must be a 2D array")

        if mask.dtype == np.bool_:
            mask = mask.astype(np.uint8) * ON_VALUE
        elif mask.dtype != np.uint8:
            raise InvalidFormatError(f"Mask is not of 8-bit type ({mask.dtype})")

        if not np.isin(mask, (0, ON_VALUE)).all():
            raise InvalidFormatError("Mask contains values other than 0 and 255")

        self.height, self.width = mask.shape

        # Row 0 and column 0 are zero padding
        if mask.size == 0:
            self.integral = np.zeros((self.height + 1, self.width + 1), dtype=np.int32)
        else:
            self.integral = cv2.integral(mask // ON_VALUE)

    def is_empty(self):
        return self.integral is None

    def rectangle_sum(self, rect):
        """
        Count of on pixels inside rect in O(1)

        Parts of rect lying outside the mask are clipped away.
        """
        if self.integral is None:
            return 0

        x1 = max(0, min(rect.x, self.width))
        x2 = max(0, min(rect.right, self.width))
        y1 = max(0, min(rect.y, self.height))
        y2 = max(0, min(rect.bottom, self.height))

        if x1 >= x2 or y1 >= y2:
            return 0

        # Standard formula: D - B - C + A
        D = self.integral[y2, x2]
        B = self.integral[y2, x1]
        C = self.integral[y1, x2]
        A = self.integral[y1, x1]

        return int(D - B - C + A)

    def fill_ratio(self, rect, area=None):
        """
        Percentage of on pixels in rect

        Args:
            rect: Rect to evaluate
            area: reference area to normalize by, defaults to rect.area

        Returns:
            100 * on_pixels / area, 0.0 without a mask or with zero area
        """
        if self.integral is None:
            return 0.0

        if area is None:
            area = rect.area
        if area <= 0:
            return 0.0

        return self.rectangle_sum(rect) * 100.0 / area
