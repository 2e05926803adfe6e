# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

import struct
from collections.abc import Mapping


SECTOR_SIZE = 512


def labels(desc):
    """
    Given the description of a C structure in *desc*, returns a tuple of the
    labels.

    The :class:`str` *desc* must contain one entry per line (blank lines are
    ignored) where each entry consists of whitespace separated type (in Python
    :mod:`struct` format) and label. For example::

        >>> ENTRY = '''
        B     boot_indicator
        3x    chs
        B     partition_type
        I     start_sector_abs
        '''
        >>> labels(ENTRY)
        ('boot_indicator', 'partition_type', 'start_sector_abs')

    Note the amount of whitespace is arbitrary, and further that any entries
    with the type "x" (which is used to indicate padding) will be excluded from
    the result ("chs" is missing from the result tuple above).

    The corresponding function :func:`formats` can be used to obtain a tuple
    of the types.
    """
    return tuple(
        label
        for line in desc.splitlines()
        if line.strip()
        for fmt, label in (line.split(None, 1),)
        if not fmt.endswith('x')
    )


def formats(desc, prefix='<'):
    """
    Given the description of a C structure in *desc*, returns a concatenated
    :class:`str` of the types with an optional *prefix* (for endianness, which
    defaults to little-endian with no alignment padding).

    The :class:`str` *desc* must follow the same layout described in
    :func:`labels`. For example::

        >>> formats(ENTRY)
        '<B3xBI'

    Note that, unlike :func:`labels`, padding entries (type "x") are *not*
    excluded from the result.
    """
    return prefix + ''.join(
        fmt
        for line in desc.splitlines()
        if line.strip()
        for fmt, label in (line.split(None, 1),)
    )


def format_size(sectors, sector_size=SECTOR_SIZE):
    """
    Return a human-readable :class:`str` describing the size of *sectors*
    sectors of *sector_size* bytes each.

    Sizes below 1GiB are expressed in mebibytes, everything else in gibibytes,
    both with a single decimal digit. For example::

        >>> format_size(204800)
        '100.0M'
        >>> format_size(2097152)
        '1.0G'

    Both quantities are rounded to single precision before formatting, so a
    size within a fraction of a sector of a rounding boundary at the first
    decimal digit is displayed as single-precision arithmetic gives it::

        >>> format_size(21495809)
        '10.2G'
    """
    mib = _single(sectors * sector_size / (1024 * 1024))
    gib = _single(mib / 1024)
    if gib >= 1.0:
        return f'{gib:.1f}G'
    else:
        return f'{mib:.1f}M'


_SINGLE = struct.Struct('<f')

def _single(value):
    return _SINGLE.unpack(_SINGLE.pack(value))[0]


class FrozenDict(Mapping):
    """
    A hashable, immutable mapping type.

    The arguments to :class:`FrozenDict` are processed just like those to
    :class:`dict`.
    """
    def __init__(self, *args):
        self._d = dict(*args)
        self._hash = None

    def __iter__(self):
        return iter(self._d)

    def __len__(self):
        return len(self._d)

    def __getitem__(self, key):
        return self._d[key]

    def __repr__(self):
        return f'{self.__class__.__name__}({self._d})'

    def __hash__(self):
        if self._hash is None:
            self._hash = hash(frozenset(self._d.items()))
        return self._hash
