# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

"""
Lists the partitions defined by the MBR partition table of a disk image or
block device, including the logical partitions within any extended partitions.
"""

import os
import sys
import logging
from importlib import resources
from importlib.metadata import version

from . import lang
from .disk import DiskSource, assemble
from .config import CONFIG_LOCATIONS, ConfigArgumentParser


HEADER = 'Device       Boot  Start      End    Sectors  Size  Type'


def get_parser():
    """
    Returns the command line parser for the application, pre-configured with
    defaults from the application's configuration file(s). See
    :class:`~mbrls.config.ConfigArgumentParser` for more information.
    """
    parser = ConfigArgumentParser(
        description=__doc__,
        template=resources.files('mbrls') / 'default.conf')
    parser.add_argument(
        '--version', action='version', version=version('mbrls'))
    parser.add_argument(
        '-v', '--verbose', dest='log_level',
        action='store_const', const=logging.INFO,
        help="Print more output")
    parser.add_argument(
        '-q', '--quiet', dest='log_level',
        action='store_const', const=logging.CRITICAL,
        help="Print no output")

    parser.add_argument(
        'device', type=str,
        help="The disk image or block device to read, e.g. /dev/sda")

    listing = parser.add_argument_group('list', section='list')
    listing.add_argument(
        '--cycle-check', key='cycle_check', action='store_true',
        help="Stop following a chain of extended boot records that links "
        "back on itself (default: %(default)s)")
    listing.add_argument(
        '--no-cycle-check', dest='cycle_check', key='cycle_check',
        action='store_false',
        help="Follow chains of extended boot records without checking for "
        "loops; a looped chain will never finish")
    listing.add_argument(
        '--header', key='header', action='store_true',
        help="Print a header line before the partitions (default: "
        "%(default)s)")
    listing.add_argument(
        '--no-header', dest='header', key='header', action='store_false',
        help="Do not print a header line")

    defaults = parser.read_configs(CONFIG_LOCATIONS)
    parser.set_defaults(log_level=logging.WARNING)
    parser.set_defaults_from(defaults)
    return parser


def format_partition(part):
    """
    Render *part*, a :class:`~mbrls.disk.ReportedPartition`, as a single line
    of the partition table.
    """
    return '{name:<10s} {boot:>4s} {start:>7d} {end:>7s} {sectors:>7d} ' \
        '{size:>6s} {type:<18s}'.format(
            name=part.name,
            boot='*' if part.bootable else ' ',
            start=part.start,
            end='-' if part.end is None else str(part.end),
            sectors=part.sectors,
            size=part.size,
            type=part.type_label).rstrip()


def format_table(table, header=True):
    """
    Generator yielding the lines of the listing for *table*, a
    :class:`~mbrls.disk.PartitionTable`, optionally preceded by the column
    *header*.
    """
    if header:
        yield HEADER
    for part in table.partitions:
        yield format_partition(part)


def list_partitions(conf):
    """
    Given the script's configuration in *conf*, an :class:`argparse.Namespace`,
    read and print the partition table of *conf.device*. Returns the
    :class:`~mbrls.disk.PartitionTable` read.
    """
    conf.logger.info('Reading partition table from %s', conf.device)
    with DiskSource(conf.device) as source:
        table = assemble(
            source, conf.device, detect_cycles=conf.cycle_check)
    for line in format_table(table, header=conf.header):
        print(line)
    return table


def main(args=None):
    """
    The main entry point for the :program:`mbrls` application. Takes *args*,
    the sequence of command line arguments to parse. Returns the exit code of
    the application (0 for a normal exit, and non-zero otherwise).

    The partitions found are always printed, even when the walk of an extended
    partition fails part way; in that case the errors are reported afterward
    and the exit code is 1.

    If ``DEBUG=1`` is found in the application's environment, top-level
    exceptions will be printed with a full back-trace. ``DEBUG=2`` will launch
    PDB in post-mortem mode.
    """
    try:
        debug = int(os.environ['DEBUG'])
    except (KeyError, ValueError):
        debug = 0
    lang.init()

    try:
        conf = get_parser().parse_args(args)
        conf.logger = logging.getLogger('mbrls')
        for handler in list(conf.logger.handlers):
            conf.logger.removeHandler(handler)
        conf.logger.addHandler(logging.StreamHandler(sys.stderr))
        conf.logger.setLevel(logging.DEBUG if debug else conf.log_level)
        table = list_partitions(conf)
    except Exception as e:
        if not debug:
            print(str(e), file=sys.stderr)
            return 1
        elif debug == 1:
            raise
        else:
            import pdb
            pdb.post_mortem()
            return 1
    else:
        for err in table.errors:
            print(str(err), file=sys.stderr)
        return 1 if table.errors else 0
