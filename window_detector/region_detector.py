# window_detector/region_detector.py
"""
Complete region detector: background removal, color thresholding,
sliding window scan and reporting
"""
import json
import os
from datetime import datetime

import numpy as np
import cv2
import matplotlib.pyplot as plt

from .image import Image, RED, GREEN
from .sliding_window import SlidingWindow

COLOR_SPACES = {
    'bgr': None,
    'hsv': cv2.COLOR_BGR2HSV,
    'ycrcb': cv2.COLOR_BGR2YCrCb,
}


class BackgroundError(RuntimeError):
    """A background image could not be read"""


class RegionDetector:
    """
    Finds objects in images by scanning a color mask with a sliding window
    """

    def __init__(self, config_path=None, **overrides):
        """
        Initialize with optional configuration

        Args:
            config_path: Path to JSON config file, ignored if missing
            overrides: parameters taking precedence over the config file
        """
        # Load configuration
        self.config = {}
        if config_path and os.path.exists(config_path):
            with open(config_path, 'r') as f:
                self.config = json.load(f)

        # Default parameters
        self.default_params = {
            # Sliding window
            'window_width': 30,
            'window_height': 30,
            'step_x': None,  # window_width / 8
            'step_y': None,  # window_height / 8
            'fill_threshold': 30,

            # Color thresholding
            'color_space': 'hsv',
            'lower': [0, 40, 60],
            'upper': [25, 255, 255],

            # Background subtraction (MOG2)
            'background_history': 30,
            'background_var_threshold': 16,
            'learning_rate': 0.00001,

            # Output
            'consolidate': False,
            'highlight_color': list(RED),
            'best_fit_color': list(GREEN),
        }

        # Merge with config
        self.params = {**self.default_params, **self.config, **overrides}

        if self.params['color_space'] not in COLOR_SPACES:
            raise ValueError(f"Unknown color space: {self.params['color_space']}")

        self.window = SlidingWindow(
            self.params['window_width'],
            self.params['window_height'],
            self.params['step_x'],
            self.params['step_y']
        )
        self.backgrounds = []

        print("="*60)
        print("SLIDING WINDOW REGION DETECTOR")
        print("="*60)
        print(f"Window: {self.window}")
        print(f"Fill threshold: {self.params['fill_threshold']}%")
        print(f"Color range ({self.params['color_space']}): "
              f"{self.params['lower']} - {self.params['upper']}")
        print("="*60)

    def learn_backgrounds(self, paths):
        """
        Build one background model per background image

        Raises:
            BackgroundError: a background image cannot be read
        """
        for path in paths:
            image = cv2.imread(str(path))
            if image is None:
                raise BackgroundError(f"Unable to read background information from {path}!")

            subtractor = cv2.createBackgroundSubtractorMOG2(
                history=self.params['background_history'],
                varThreshold=self.params['background_var_threshold']
            )
            subtractor.apply(image)
            self.backgrounds.append(subtractor)

        print(f"✓ Learned {len(self.backgrounds)} background model(s)")
        return self.backgrounds

    def in_range(self, pixels):
        """Default pixel predicate: every channel within [lower, upper]"""
        lower = np.array(self.params['lower'], dtype=np.uint8)
        upper = np.array(self.params['upper'], dtype=np.uint8)
        return cv2.inRange(pixels, lower, upper) > 0

    def build_mask(self, image, predicate=None):
        """
        Binary object mask of an opened Image

        Args:
            image: opened Image
            predicate: pixel predicate, defaults to the configured range
        """
        foreground = None
        if self.backgrounds:
            foreground = image.get_foreground_mask(self.backgrounds,
                                                   self.params['learning_rate'])

        if predicate is None:
            predicate = self.in_range

        return image.threshold(predicate,
                               COLOR_SPACES[self.params['color_space']],
                               foreground)

    def detect(self, mask, region=None):
        """Scan a binary mask and return the bounding boxes"""
        boxes = self.window.run(mask, self.params['fill_threshold'], region)
        if self.params['consolidate']:
            boxes = boxes.consolidated()
        return boxes

    def process_image(self, image, predicate=None):
        """
        Detect objects in an image

        Args:
            image: opened Image or BGR numpy array

        Returns:
            (BoundingBoxSet, mask)
        """
        if isinstance(image, np.ndarray):
            image = Image.from_array(image)

        mask = self.build_mask(image, predicate)
        boxes = self.detect(mask)

        print(f"  Mask coverage: {np.count_nonzero(mask)}/{mask.size} pixels")
        print(f"  Found {len(boxes)} objects")
        return boxes, mask

    def visualize_results(self, image, boxes, save_path=None):
        """
        Draw union rectangles and best fitting windows

        Args:
            image: BGR numpy array, not modified
            boxes: BoundingBoxSet
            save_path: Path to save visualization
        """
        vis = image.copy()
        color = tuple(self.params['highlight_color'])
        best_color = tuple(self.params['best_fit_color'])

        for i, box in enumerate(boxes):
            x1, y1, x2, y2 = box.union_rect.corners()
            cv2.rectangle(vis, (x1, y1), (x2, y2), color, 2)

            bx1, by1, bx2, by2 = box.best_rect.corners()
            cv2.rectangle(vis, (bx1, by1), (bx2, by2), best_color, 1)

            label = f"{i+1}: {box.best_fill_ratio:.0f}%"
            cv2.putText(vis, label, (x1, max(y1 - 5, 10)),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1)

        if save_path:
            cv2.imwrite(save_path, vis)
            print(f"✓ Saved visualization to: {save_path}")

        return vis

    def plot_detections(self, image, mask, boxes, save_path):
        """Side by side figure of the detections and the scanned mask"""
        vis = self.visualize_results(image, boxes)

        fig, axes = plt.subplots(1, 2, figsize=(12, 5))

        axes[0].imshow(cv2.cvtColor(vis, cv2.COLOR_BGR2RGB))
        axes[0].set_title(f"Detections ({len(boxes)} objects)")
        axes[0].axis('off')

        axes[1].imshow(mask, cmap='gray')
        axes[1].set_title(f"Mask ({self.params['color_space']} range)")
        axes[1].axis('off')

        plt.tight_layout()
        plt.savefig(save_path, dpi=100)
        plt.close(fig)
        print(f"✓ Saved plot to: {save_path}")

    def save_results(self, image_name, boxes, output_dir):
        """
        Save detected boxes to text file
        """
        result_file = os.path.join(output_dir, f"{image_name}_results.txt")

        with open(result_file, 'w') as f:
            f.write("="*60 + "\n")
            f.write("REGION DETECTION RESULTS\n")
            f.write("="*60 + "\n\n")

            f.write(f"Image: {image_name}\n")
            f.write(f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
            f.write(f"Objects: {len(boxes)}\n\n")

            f.write(f"Parameters:\n")
            f.write(f"  Window: {self.window.width} x {self.window.height}\n")
            f.write(f"  Step: {self.window.step_x} x {self.window.step_y}\n")
            f.write(f"  Fill threshold: {self.params['fill_threshold']}%\n\n")

            f.write("-"*60 + "\n\n")

            for i, box in enumerate(boxes):
                x1, y1, x2, y2 = box.union_rect.corners()
                bx1, by1, bx2, by2 = box.best_rect.corners()

                f.write(f"Object {i+1}:\n")
                f.write(f"  Coordinates: [{x1}, {y1}, {x2}, {y2}]\n")
                f.write(f"  Dimensions: {x2-x1} x {y2-y1}\n")
                f.write(f"  Best window: [{bx1}, {by1}, {bx2}, {by2}]\n")
                f.write(f"  Fill ratio: {box.best_fill_ratio:.2f}%\n")
                f.write("-"*40 + "\n\n")

        print(f"✓ Saved detailed results to: {result_file}")
        return result_file
