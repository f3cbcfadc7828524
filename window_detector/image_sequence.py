# window_detector/image_sequence.py
import os
from pathlib import Path

from .image import Image

IMAGE_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.bmp', '.tiff']


class ImageSequence(list):
    """
    List of numbered images, e.g. frames of one camera

    ImageSequence("/my/images", "png", "CAM-", "", 3, 1, 100) holds
    CAM-001.png ... CAM-100.png. The images are not opened.
    """

    def __init__(self, dirpath=None, extension='', prefix='', suffix='',
                 num_digits=0, range_start=0, range_end=-1):
        super().__init__()

        if dirpath is None:
            return

        for number in range(range_start, range_end + 1):
            name = f"{prefix}{str(number).zfill(num_digits)}{suffix}.{extension}"
            self.append(Image(os.path.join(dirpath, name)))

    @classmethod
    def from_directory(cls, dirpath, extensions=None):
        """All images in dirpath with one of the extensions, sorted by name"""
        if extensions is None:
            extensions = IMAGE_EXTENSIONS
        extensions = {ext.lower() if ext.startswith('.') else '.' + ext.lower()
                      for ext in extensions}

        sequence = cls()
        for path in sorted(Path(dirpath).iterdir()):
            if path.is_file() and path.suffix.lower() in extensions:
                sequence.append(Image(path))

        return sequence

    def run(self, callback):
        """Call callback on each image; opening and closing is up to it"""
        for image in self:
            callback(image)
