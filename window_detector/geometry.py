# window_detector/geometry.py
"""
Axis-aligned rectangle used by the scan and merge code
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    """Rectangle given by its top-left corner (x, y) and its size"""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def from_points(cls, tl, br):
        """Build a rectangle from top-left and bottom-right (exclusive) corners"""
        return cls(tl[0], tl[1], br[0] - tl[0], br[1] - tl[1])

    @property
    def area(self):
        return self.width * self.height

    @property
    def right(self):
        return self.x + self.width

    @property
    def bottom(self):
        return self.y + self.height

    @property
    def tl(self):
        return (self.x, self.y)

    @property
    def br(self):
        return (self.right, self.bottom)

    def is_empty(self):
        return self.width <= 0 or self.height <= 0

    def corners(self):
        """(x1, y1, x2, y2) as expected by cv2.rectangle"""
        return (self.x, self.y, self.right, self.bottom)

    def contains(self, other):
        return (self.x <= other.x and self.y <= other.y
                and other.right <= self.right and other.bottom <= self.bottom)

    def intersects(self, other):
        """True if the two rectangles share a region of positive area"""
        return (self & other).area > 0

    def __and__(self, other):
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.right, other.right)
        y2 = min(self.bottom, other.bottom)

        if x2 <= x1 or y2 <= y1:
            return Rect()

        return Rect(x1, y1, x2 - x1, y2 - y1)

    def __or__(self, other):
        # an empty operand does not stretch the union towards the origin
        if self.is_empty():
            return other
        if other.is_empty():
            return self

        x1 = min(self.x, other.x)
        y1 = min(self.y, other.y)
        x2 = max(self.right, other.right)
        y2 = max(self.bottom, other.bottom)

        return Rect(x1, y1, x2 - x1, y2 - y1)
