# main.py
"""
MAIN EXECUTION SCRIPT FOR THE REGION DETECTOR
Usage: python main.py [-p prefix] [-s suffix] [-d num_digits] [-e extension]
                      [-o output_dir] [-b background [-b ...]]
                      [-f from -t to] input_dir
"""
import argparse
import os
import sys
import traceback

from tqdm import tqdm

from window_detector.image_sequence import ImageSequence
from window_detector.region_detector import RegionDetector


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Sliding window region detector')

    parser.add_argument('input_dir', help='Input folder containing images')
    parser.add_argument('-p', dest='prefix', default='', help='File name prefix')
    parser.add_argument('-s', dest='suffix', default='', help='File name suffix')
    parser.add_argument('-d', dest='num_digits', type=int, default=0,
                        help='Number of digits in file names (0 means no padding)')
    parser.add_argument('-e', dest='extension', default='', help='Image extension')
    parser.add_argument('-f', dest='range_from', type=int, help='File range start')
    parser.add_argument('-t', dest='range_to', type=int, help='File range end')
    parser.add_argument('-o', dest='output_dir', default='',
                        help='Output folder (preview windows if omitted)')
    parser.add_argument('-b', dest='backgrounds', action='append', default=[],
                        help='Background image to remove, may be repeated')
    parser.add_argument('--config', default='config.json', help='Path to config file')
    parser.add_argument('--threshold', type=float, help='Fill ratio threshold in percent')
    parser.add_argument('--consolidate', action='store_true',
                        help='Merge boxes that overlap each other after the scan')

    args = parser.parse_args(argv)

    if (args.range_from is None) != (args.range_to is None):
        parser.error("-f and -t have to be given together")
    if args.range_from is not None and not args.extension:
        parser.error("-e is required with a numbered range")

    return args


def print_options(args):
    print(f"Input directory: {args.input_dir}")
    print(f"Output directory: {args.output_dir}")
    print(f"Allowed extension: {args.extension}")
    print(f"Filename prefix: {args.prefix}")
    print(f"Filename suffix: {args.suffix}")
    print(f"Number of digits: {args.num_digits}")
    print(f"File range start: {args.range_from}")
    print(f"File range to: {args.range_to}")
    print(f"Background to remove: {', '.join(args.backgrounds)}")


def build_sequence(args):
    if args.range_from is not None:
        return ImageSequence(args.input_dir, args.extension, args.prefix,
                             args.suffix, args.num_digits,
                             args.range_from, args.range_to)

    extensions = [args.extension] if args.extension else None
    return ImageSequence.from_directory(args.input_dir, extensions)


def process(detector, image, output_dir):
    """Detect, highlight and save or preview one image"""
    if not image.open():
        print(f"Warning: Could not load {image.filename}")
        return False

    try:
        boxes, _ = detector.process_image(image)
        image.highlight_objects(boxes, tuple(detector.params['highlight_color']))

        if output_dir:
            image.save(os.path.join(output_dir, '%n'))
            stem = os.path.splitext(image.name)[0]
            detector.save_results(stem, boxes, output_dir)
        else:
            image.show_and_wait("Preview")
    finally:
        image.close()

    return True


def main(argv=None):
    """Main execution function"""
    args = parse_args(argv)

    print_options(args)
    print()

    if not os.path.isdir(args.input_dir):
        print(f"Error: Input folder '{args.input_dir}' does not exist")
        return 1

    if args.output_dir:
        os.makedirs(args.output_dir, exist_ok=True)

    overrides = {}
    if args.threshold is not None:
        overrides['fill_threshold'] = args.threshold
    if args.consolidate:
        overrides['consolidate'] = True

    detector = RegionDetector(args.config, **overrides)
    if args.backgrounds:
        detector.learn_backgrounds(args.backgrounds)

    images = build_sequence(args)
    print(f"Found {len(images)} images in '{args.input_dir}'")

    processed_count = 0
    for image in tqdm(images, desc="Processing images"):
        try:
            print(f"\nProcessing {image.name}...")
            if process(detector, image, args.output_dir):
                processed_count += 1
        except Exception as e:
            print(f"Error processing {image.filename}: {str(e)}")
            traceback.print_exc()
            continue

    # Summary
    print(f"\n{'='*60}")
    print("PROCESSING COMPLETE")
    print(f"{'='*60}")
    print(f"Total images processed: {processed_count}/{len(images)}")
    if args.output_dir:
        print(f"Output folder: {args.output_dir}")
    print(f"{'='*60}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
