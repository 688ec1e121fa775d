import sys
from argparse import ArgumentParser

from buddhabrot import CodecError
from buddhabrot.palette import DEFAULT_AMOUNT, colorize_file


def build_parser():
    parser = ArgumentParser(description='Colour a 16-bit grayscale render with the cubehelix palette.')

    parser.add_argument('input', type=str,
                        help='16-bit grayscale image to colour; output is written as cubehelix_<input>',
                        metavar='IMAGE')

    parser.add_argument('amount', type=float, nargs='?', default=DEFAULT_AMOUNT,
                        help='steepness of the sigmoid contrast curve. Default: %(default)s',
                        metavar='AMOUNT')

    parser.add_argument('--colormap', type=str, dest='colormap', default='cubehelix',
                        help='matplotlib colormap used to build the 256-entry palette')

    return parser


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    try:
        output_path = colorize_file(opt.input, opt.amount, opt.colormap)
    except CodecError as exc:
        print(exc, file=sys.stderr)
        return 1
    except KeyError:
        parser.error(f"unknown colormap '{opt.colormap}'")

    print(output_path)
    return 0


if __name__ == '__main__':
    sys.exit(main())
