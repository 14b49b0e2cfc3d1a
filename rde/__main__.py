#!/usr/bin/env python
'''__main__.py - Disassemble an executable and print its instruction listing.'''

import logging
import sys

from rde import disassembler
from rde import image
from rde import listing
from rde.cpu import DecodeError


def _usage(me):
    print('Usage: %s [-d|--debug] <filename> [output]' % me)


def _setup_logging(debug):
    logger = logging.getLogger('rde')
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter('(%(asctime)s) [*] %(message)s',
            '%Y-%m-%d %H:%M:%S'))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)


def main(argv=None):

    if argv is None:
        argv = sys.argv

    me = argv[0] if len(argv) else 'rde'
    args = list(argv[1:])

    debug = False
    if len(args) and args[0] in ['-d', '--debug']:
        debug = True
        args.pop(0)

    if len(args) not in [1, 2]:
        _usage(me)
        return 1

    path = args[0]
    output = args[1] if len(args) == 2 else None

    _setup_logging(debug)

    try:
        with open(path, 'rb') as f:
            contents = f.read()
    except OSError as e:
        print('Could not open the input file: %s' % e)
        return 1

    try:
        disasm = disassembler.Disassembler(image.load(contents))
    except (image.MalformedImageError, DecodeError) as e:
        print('Could not load %s: %s' % (path, e))
        return 1

    disasm.disassemble()

    if output is None:
        try:
            listing.emit(disasm.instructions, sys.stdout)
            sys.stdout.flush()
        except OSError as e:
            print('Could not write the output: %s' % e, file=sys.stderr)
            return 1
        return 0

    try:
        with open(output, 'w') as f:
            listing.emit(disasm.instructions, f)
    except OSError as e:
        print('Could not write the output file: %s' % e)
        return 1

    return 0

if __name__ == '__main__':
    sys.exit(main(sys.argv))
