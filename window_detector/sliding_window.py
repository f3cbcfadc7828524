# window_detector/sliding_window.py
"""
Sliding window scan over a binary mask
"""
import numbers

from .bounding_box import BoundingBoxSet
from .geometry import Rect
from .integral_image import SummedAreaTable


def _as_pixels(value, name):
    """Whole number of pixels; 30.0 from a JSON config is taken as 30"""
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)

    raise ValueError(f"Window {name} must be a whole number of pixels, got {value!r}")


class SlidingWindow:
    """
    Fixed size window moved over a mask with a fixed stride

    Every window position covering more than `threshold` percent of on
    pixels is pushed into a BoundingBoxSet.
    """

    def __init__(self, width, height, step_x=None, step_y=None):
        """
        Args:
            width, height: window dimensions in pixels
            step_x, step_y: stride between window positions,
                            default to 1/8 of the window dimensions
        """
        width = _as_pixels(width, 'width')
        height = _as_pixels(height, 'height')
        if width <= 0 or height <= 0:
            raise ValueError(f"Window must have positive dimensions, got {width}x{height}")

        if step_x is None:
            step_x = max(1, width // 8)
        if step_y is None:
            step_y = max(1, height // 8)

        step_x = _as_pixels(step_x, 'step_x')
        step_y = _as_pixels(step_y, 'step_y')
        if step_x <= 0 or step_y <= 0:
            raise ValueError(f"Window step must be positive, got {step_x}x{step_y}")

        self.width = width
        self.height = height
        self.step_x = step_x
        self.step_y = step_y
        self.area = width * height

    def windows(self, region):
        """
        Generate window rectangles over region, row by row

        A window reaching the bottom or right edge of the region is
        clamped to end one pixel before it. Once clamping leaves no
        room the axis is done.
        """
        bottom = region.bottom
        right = region.right

        for top in range(region.y, bottom, self.step_y):
            br_y = top + self.height
            if br_y >= bottom:
                br_y = bottom - 1
                if br_y <= top:
                    break

            for left in range(region.x, right, self.step_x):
                br_x = left + self.width
                if br_x >= right:
                    br_x = right - 1
                    if br_x <= left:
                        break

                yield Rect.from_points((left, top), (br_x, br_y))

    def run(self, mask, threshold, region=None):
        """
        Scan mask and collect windows above threshold

        Args:
            mask: 8-bit mask holding only 0 and 255
            threshold: fill ratio in percent a window has to exceed
            region: Rect to scan, defaults to the whole mask

        Returns:
            BoundingBoxSet of the merged windows

        Raises:
            InvalidFormatError: mask is not binary
        """
        sat = SummedAreaTable(mask)
        if region is None:
            region = Rect(0, 0, sat.width, sat.height)

        boxes = BoundingBoxSet(sat, self.area)

        for window in self.windows(region):
            # Clamped windows are still judged against the full window area
            fill_ratio = sat.fill_ratio(window, self.area)
            if fill_ratio > threshold:
                boxes.push(window, fill_ratio)

        return boxes

    def __repr__(self):
        return (f"SlidingWindow({self.width}x{self.height}, "
                f"step={self.step_x}x{self.step_y})")
