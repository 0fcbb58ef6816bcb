"""List or filter the instructions of decoded PDF content streams"""
import logging
import sys
from argparse import ArgumentParser

from pdfcontent.high_level import dump_content_stream

logging.basicConfig()


def create_parser():
    parser = ArgumentParser(description=__doc__, add_help=True)
    parser.add_argument('files', type=str, default=None, nargs='+',
                        help='One or more files holding decoded content '
                             'stream data.')

    parser.add_argument(
        '--debug', '-d', default=False, action='store_true',
        help='Use debug logging level.')

    parse_params = parser.add_argument_group(
        'Parser', description='Used during content stream parsing')
    parse_params.add_argument(
        '--operators', '-O', type=str, default='',
        help='A space-separated list of operators to keep, e.g. "q Q cm Do". '
             'All operators are kept by default.')

    output_params = parser.add_argument_group(
        'Output', description='Used during output generation.')
    output_params.add_argument(
        '--outfile', '-o', type=str, default='-',
        help='Path to file where output is written. Or "-" (default) to '
             'write to stdout.')
    output_params.add_argument(
        '--binary', '-b', default=False, action='store_true',
        help='Write the instructions back as content stream bytes instead '
             'of listing them.')

    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(args=argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    codec = 'binary' if args.binary else None
    if args.outfile == '-':
        outfp = sys.stdout.buffer if args.binary else sys.stdout
    else:
        outfp = open(args.outfile, 'wb' if args.binary else 'w')

    try:
        for (i, fname) in enumerate(args.files):
            if args.binary and i:
                # Concatenated content streams need a delimiter
                outfp.write(b'\n')
            with open(fname, 'rb') as fp:
                dump_content_stream(outfp, fp.read(), args.operators, codec)
    finally:
        if outfp not in (sys.stdout, sys.stdout.buffer):
            outfp.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
