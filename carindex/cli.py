"""
A commandline script to print the header or a line-delimited JSON index of a CAR file.
"""
from __future__ import annotations

import argparse
import os
import sys

import carindex

from carindex.lib import car, json
from carindex.lib.car import IndexEntry, generate_car_index, parse_car_header
from carindex.lib.environment import LogLevel, environment, logger


def _write_line(data: bytes):
    out = sys.stdout.buffer
    out.write(data)
    out.write(B'\n')


def header_action(args: argparse.Namespace) -> None:
    """
    Print the header of the CAR file as JSON.
    """
    header = parse_car_header(args.file, window=args.window)
    _write_line(json.dumps(header))


def index_action(args: argparse.Namespace) -> None:
    """
    Print a line-delimited JSON index of the CAR file.
    """
    def sink(entry: IndexEntry):
        _write_line(json.dumps(entry))
    generate_car_index(args.file, sink, window=args.window)
    sys.stdout.flush()


def argparser() -> argparse.ArgumentParser:
    argp = argparse.ArgumentParser(
        prog='carindex',
        description='Inspect CAR (content-addressable archive) files without reading block data.')
    argp.add_argument(
        '-V', '--version',
        action='version',
        version=carindex.__version__,
        help='Show the currently installed version of carindex and exit.'
    )
    argp.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Be verbose; specify twice for debug output.'
    )
    argp.add_argument(
        '-w', '--window',
        type=int,
        default=None,
        metavar='N',
        help='The number of bytes that a varint may occupy at most; default is {}.'.format(
            environment.varint_window.value)
    )
    commands = argp.add_subparsers(dest='command', metavar='command', required=True)
    header = commands.add_parser(
        'header',
        help='Print the header for a CAR file as JSON.')
    header.add_argument('file', help='The CAR file.')
    header.set_defaults(action=header_action)
    index = commands.add_parser(
        'index',
        help='Generate an index for a CAR file, print to stdout as line-delimited JSON.')
    index.add_argument('file', help='The CAR file.')
    index.set_defaults(action=index_action)
    return argp


def main(argv: list[str] | None = None) -> int:
    """
    Main routine of the carindex command line interface. Returns the exit code.
    """
    args = argparser().parse_args(argv)
    log = logger(carindex.__name__)
    level = environment.verbosity.value
    if args.verbose or level is None:
        level = LogLevel.FromVerbosity(args.verbose)
    for name in (carindex.__name__, car.__name__):
        logger(name).setLevel(level)

    try:
        args.action(args)
    except BrokenPipeError:
        log.info('output pipe was closed; aborting')
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 1
    except Exception as error:
        log.error(F'{args.command} failed for {args.file}: {error!s}')
        log.debug('exception details follow', exc_info=True)
        return 1
    return 0


def run():
    sys.exit(main())


if __name__ == '__main__':
    run()
