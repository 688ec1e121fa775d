import os
import sys
import threading
import warnings
from argparse import ArgumentParser, ArgumentTypeError
from pathlib import Path

VERBOSE = any(arg in ("-v", "--verbose") for arg in sys.argv[1:])

# TensorFlow reads its C++ log level once, at import.
if not VERBOSE:
    os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "3")
    warnings.filterwarnings("ignore", category=UserWarning, module="google.protobuf")


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf

from buddhabrot import CodecError, RenderCancelled, RenderParameters, check_format, render_image, write_image

if not VERBOSE:
    tf.get_logger().setLevel("ERROR")


def select_device():
    """Device for the histogram merge: the first GPU if one is usable, else the CPU."""

    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as exc:
        log("GPU unusable (%s), using CPU" % exc)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


def positive_int(text):
    try:
        value = int(text)
    except ValueError:
        raise ArgumentTypeError(f"invalid positive integer: '{text}'")
    if value <= 0:
        raise ArgumentTypeError(f"must be a positive integer, got {value}")
    return value


def build_parser():
    parser = ArgumentParser(description='Render a Buddhabrot density image with adaptive sampling.')

    parser.add_argument('image_size', type=positive_int,
                        help='side length of the square image in pixels', metavar='SIZE')

    parser.add_argument('iterations', type=positive_int,
                        help='maximum number of iterations per trajectory', metavar='ITERATIONS')

    parser.add_argument('workers', type=positive_int,
                        help='number of parallel workers; worker i renders rows i, i+N, ...', metavar='WORKERS')

    parser.add_argument('max_samples', type=positive_int,
                        help='maximum number of trials spent on a single pixel cell', metavar='MAX_SAMPLES')

    parser.add_argument('--output-dir', type=str, dest='output_dir', default='.',
                        help='directory in which the rendered image is written. Default: current directory.')

    parser.add_argument('--format', type=str, dest='format', default='png',
                        help='file format of the output image. Must support 16-bit grayscale. Default: "png".')

    parser.add_argument('--no-mirror', dest='mirror', action='store_false',
                        help='do not fold the image about the real axis when merging worker histograms')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


class RowProgress:
    """Print a "row n out of total" line as workers complete rows."""

    def __init__(self, total):
        self.total = total
        self.completed = 0
        self._lock = threading.Lock()

    def __call__(self, worker_index, row):
        with self._lock:
            self.completed += 1
            print("row {0} out of {1}".format(self.completed, self.total), end='\r')


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    log("TensorFlow version: %s" % tf.__version__)

    try:
        params = RenderParameters(
            image_size=opt.image_size,
            iterations=opt.iterations,
            workers=opt.workers,
            max_samples=opt.max_samples,
            mirror=opt.mirror,
        )
    except ValueError as exc:
        parser.error(str(exc))

    image_format = (opt.format or "png").lower().lstrip(".") or "png"
    try:
        check_format(image_format)
    except CodecError as exc:
        parser.error(str(exc))
    output_path = Path(opt.output_dir).expanduser().resolve() / params.output_filename(image_format)

    log("rendering %dx%d, %d iterations, %d workers, up to %d samples per cell" % (
        params.image_size, params.image_size, params.iterations, params.workers, params.max_samples))

    try:
        result = render_image(params, device=select_device(), on_row=RowProgress(params.image_size))
    except (RenderCancelled, KeyboardInterrupt):
        print("\nrender aborted, nothing written", file=sys.stderr)
        return 1
    print()
    log("%d trials over %d cells" % (result.trials, sum(s.cells for s in result.stats)))

    try:
        write_image(output_path, result.samples, image_format)
    except CodecError as exc:
        print(exc, file=sys.stderr)
        return 1

    log("wrote %s" % output_path)
    return 0


if __name__ == '__main__':
    sys.exit(main())
