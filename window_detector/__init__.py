# window_detector/__init__.py
from .geometry import Rect
from .integral_image import SummedAreaTable, InvalidFormatError
from .bounding_box import BoundingBox, BoundingBoxSet
from .sliding_window import SlidingWindow
from .image import Image, ImageNotOpenError
from .image_sequence import ImageSequence
from .region_detector import RegionDetector, BackgroundError

__all__ = ['Rect', 'SummedAreaTable', 'InvalidFormatError', 'BoundingBox',
           'BoundingBoxSet', 'SlidingWindow', 'Image', 'ImageNotOpenError',
           'ImageSequence', 'RegionDetector', 'BackgroundError']
