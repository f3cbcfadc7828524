# window_detector/bounding_box.py
"""
Accumulation of detected windows into bounding boxes
"""


class BoundingBox:
    """
    One detected region

    Keeps the union of all rectangles merged into it together with the
    single rectangle that had the best fill ratio.
    """

    def __init__(self, rect, fill_ratio=None):
        self._union_rect = rect
        self._best_rect = rect
        self._best_fill_ratio = 0.0 if fill_ratio is None else fill_ratio

    @property
    def union_rect(self):
        return self._union_rect

    @property
    def best_rect(self):
        return self._best_rect

    @property
    def best_fill_ratio(self):
        return self._best_fill_ratio

    def intersects(self, rect):
        return self._union_rect.intersects(rect)

    def expand(self, rect, fill_ratio=None):
        """
        Grow the box by rect

        The best fitting rectangle is replaced only when fill_ratio is
        given and strictly better than the current one.
        """
        self._union_rect = self._union_rect | rect

        if fill_ratio is None or self._best_fill_ratio >= fill_ratio:
            return

        self._best_fill_ratio = fill_ratio
        self._best_rect = rect

    def expand_if_intersects(self, rect, fill_ratio=None):
        """Expand by rect only if it intersects the box; returns whether it did"""
        intersect = self.intersects(rect)
        if intersect:
            self.expand(rect, fill_ratio)

        return intersect

    def __repr__(self):
        return (f"BoundingBox(union_rect={self._union_rect}, "
                f"best_rect={self._best_rect}, "
                f"best_fill_ratio={self._best_fill_ratio:.2f})")


class BoundingBoxSet:
    """
    Ordered collection of bounding boxes

    Boxes are kept in creation order. A pushed rectangle is merged into
    the first box it intersects, otherwise it starts a new box. Boxes
    are never merged with each other by push(), see consolidated().
    """

    def __init__(self, sat=None, area=None):
        """
        Args:
            sat: SummedAreaTable used to score pushed rectangles
            area: reference area passed to sat.fill_ratio()
        """
        self.sat = sat
        self.area = area
        self.boxes = []

    def _fill_ratio(self, rect):
        if self.sat is None:
            return None

        return self.sat.fill_ratio(rect, self.area)

    def push(self, rect, fill_ratio=None):
        """
        Merge rect into the first intersecting box or append a new one

        An explicit fill_ratio takes precedence over the table.
        """
        if fill_ratio is None:
            fill_ratio = self._fill_ratio(rect)

        for box in self.boxes:
            if box.expand_if_intersects(rect, fill_ratio):
                return box

        box = BoundingBox(rect, fill_ratio)
        self.boxes.append(box)
        return box

    def consolidated(self):
        """
        Return a new set in which no two boxes intersect

        Boxes whose unions overlap are merged until nothing changes.
        The merged box keeps the better of the two best fits, the
        earlier box winning ties.
        """
        unions = [box.union_rect for box in self.boxes]
        best = [(box.best_rect, box.best_fill_ratio) for box in self.boxes]

        changed = True
        while changed:
            changed = False
            i = 0
            while i < len(unions):
                j = i + 1
                while j < len(unions):
                    if not unions[i].intersects(unions[j]):
                        j += 1
                        continue

                    unions[i] = unions[i] | unions[j]
                    if best[j][1] > best[i][1]:
                        best[i] = best[j]

                    del unions[j]
                    del best[j]
                    changed = True
                i += 1

        result = BoundingBoxSet(self.sat, self.area)
        for union_rect, (best_rect, best_fill_ratio) in zip(unions, best):
            box = BoundingBox(best_rect, best_fill_ratio)
            box.expand(union_rect)
            result.boxes.append(box)

        return result

    def is_empty(self):
        return not self.boxes

    def union_rects(self):
        return [box.union_rect for box in self.boxes]

    def best_rects(self):
        return [box.best_rect for box in self.boxes]

    def __len__(self):
        return len(self.boxes)

    def __iter__(self):
        return iter(self.boxes)

    def __reversed__(self):
        return reversed(self.boxes)

    def __getitem__(self, index):
        return self.boxes[index]

    def __repr__(self):
        return f"BoundingBoxSet({self.boxes!r})"
