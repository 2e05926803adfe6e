# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

import os
import logging
from collections import namedtuple

from . import lang
from .exc import (
    PartitionTableError,
    InvalidSignature,
    CycleDetected,
    SeekFailure,
    ReadFailure,
)
from .mbr import DiskLabel, ExtendedLinkRecord, decode_label, decode_link
from .parttypes import type_label
from .tools import SECTOR_SIZE, format_size


logger = logging.getLogger(__name__)


class DiskSource:
    """
    Represents the byte source underlying a disk, specified by
    *filename_or_obj* which must be a :class:`str` or :class:`~pathlib.Path`
    naming a device or image file, or a binary file-like object supporting
    ``seek`` and ``read``.

    If a name is given, the file is opened read-only and will be closed by
    :meth:`close`; a file-like object is merely borrowed and left open. The
    instance can (and should) be used as a context manager; exiting the
    context will call the :meth:`close` method implicitly.

    Only two operations are provided: :meth:`seek` to an absolute byte offset,
    and :meth:`read_exact`. Failures of either are reported as
    :exc:`~mbrls.exc.SeekFailure` and :exc:`~mbrls.exc.ReadFailure`
    respectively.
    """
    def __init__(self, filename_or_obj):
        if isinstance(filename_or_obj, os.PathLike):
            filename_or_obj = filename_or_obj.__fspath__()
        self._opened = isinstance(filename_or_obj, str)
        if self._opened:
            self._file = open(filename_or_obj, 'rb')
        else:
            self._file = filename_or_obj
        self._offset = 0

    def __repr__(self):
        return f'<{self.__class__.__name__} file={self._file!r}>'

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        """
        If the file was opened by this class, close it. This method is
        idempotent and is implicitly called when the instance is used as a
        context manager.
        """
        if self._file is not None and self._opened:
            self._file.close()
        self._file = None

    def seek(self, offset):
        """
        Move to the absolute byte *offset* from the start of the source.
        """
        try:
            self._file.seek(offset)
        except (OSError, ValueError, OverflowError) as exc:
            raise SeekFailure(lang._(
                'Unable to seek to offset {offset}: {exc}'
                .format(offset=offset, exc=exc))) from exc
        self._offset = offset

    def read_exact(self, n):
        """
        Read and return exactly *n* bytes from the current offset.
        """
        try:
            data = self._file.read(n)
        except OSError as exc:
            raise ReadFailure(lang._(
                'Unable to read {n} bytes at offset {offset}: {exc}'
                .format(n=n, offset=self._offset, exc=exc))) from exc
        if data is None or len(data) < n:
            raise ReadFailure(lang._(
                'Short read at offset {offset}: expected {n} bytes but got '
                '{length}'.format(
                    offset=self._offset, n=n,
                    length=0 if data is None else len(data))))
        self._offset += n
        return data


class ReportedPartition(namedtuple('ReportedPartition', (
    'name', 'bootable', 'start', 'end', 'sectors', 'size', 'part_type',
    'type_label',
))):
    """
    A :func:`~collections.namedtuple` describing a single partition found in
    the partition table, ready for display. *end* is :data:`None` for a
    partition with no sectors.
    """
    __slots__ = ()

    @classmethod
    def from_entry(cls, name, entry, bootable):
        """
        Construct a :class:`ReportedPartition` named *name* from the
        :class:`~mbrls.mbr.PartitionEntry` *entry*. Whether the partition is
        reported as *bootable* is decided by the caller.
        """
        return cls(
            name=name,
            bootable=bool(bootable),
            start=entry.start_sector_abs,
            end=entry.end_sector_abs,
            sectors=entry.total_sectors,
            size=format_size(entry.total_sectors),
            part_type=entry.partition_type,
            type_label=type_label(entry.partition_type))


ChainWalk = namedtuple('ChainWalk', ('partitions', 'next_index', 'error'))
ChainWalk.__doc__ = """
The result of :func:`walk_extended`: the *partitions* found, the *next_index*
to use for numbering subsequent partitions, and the *error* (if any) which
stopped the walk early.
"""


PartitionTable = namedtuple('PartitionTable', ('device', 'partitions', 'errors'))
PartitionTable.__doc__ = """
The result of :func:`assemble`: the *device* name used as the stem of all
partition names, the ordered *partitions*, and any *errors* which cut short the
walk of an extended partition (the partitions found before the error are still
included).
"""


def walk_extended(source, start_sector, base_name, next_index, *,
                  detect_cycles=True):
    """
    Follow the chain of extended boot records in *source* (a
    :class:`DiskSource`, or anything with equivalent ``seek`` and
    ``read_exact`` methods) starting at the absolute sector *start_sector*.

    Each logical partition found is named *base_name* followed by a number,
    starting at *next_index*. Logical partitions are never reported as
    bootable. Returns a :class:`ChainWalk`.

    Next-record pointers are absolute sectors. A seek or read failure stops
    the walk; partitions found prior to the failure are retained, and the
    exception is returned in :attr:`ChainWalk.error`. If *detect_cycles* is
    :data:`True` (the default), revisiting a sector stops the walk with
    :exc:`~mbrls.exc.CycleDetected`. If it is :data:`False`, a chain which
    links back on itself will be followed forever.
    """
    partitions = []
    visited = set()
    sector = start_sector
    try:
        while sector:
            if detect_cycles:
                if sector in visited:
                    raise CycleDetected(lang._(
                        'Extended boot record at LBA {sector} links back to '
                        'an earlier record'.format(sector=sector)))
                visited.add(sector)
            logger.debug('Reading extended boot record at LBA %d', sector)
            source.seek(sector * SECTOR_SIZE)
            link = decode_link(source.read_exact(ExtendedLinkRecord._FORMAT.size))
            logical, _ = link.partitions
            if not logical.empty:
                partitions.append(ReportedPartition.from_entry(
                    f'{base_name}{next_index}', logical, bootable=False))
                next_index += 1
            sector = link.next_sector
    except PartitionTableError as exc:
        logger.debug(
            'Stopped walking extended partition at LBA %d: %s',
            start_sector, exc)
        return ChainWalk(partitions, next_index, exc)
    else:
        return ChainWalk(partitions, next_index, None)


def assemble(source, device_name, *, detect_cycles=True):
    """
    Read the partition table from *source* (a :class:`DiskSource`), returning
    a :class:`PartitionTable`.

    Primary partitions are numbered first (from 1, skipping empty slots),
    followed by the logical partitions of each extended partition in the order
    the extended partitions appear in the primary table. Partition names are
    formed by appending the number to *device_name*.

    Raises :exc:`~mbrls.exc.InvalidSignature` if the MBR's boot signature is
    incorrect, or :exc:`~mbrls.exc.SeekFailure` /
    :exc:`~mbrls.exc.ReadFailure` if the MBR cannot be read. Failures while
    walking extended partitions are *not* raised, but are recorded in
    :attr:`PartitionTable.errors`. See :func:`walk_extended` for the meaning of
    *detect_cycles*.
    """
    source.seek(0)
    label = decode_label(source.read_exact(DiskLabel._FORMAT.size))
    if not label.valid:
        raise InvalidSignature(lang._(
            'Invalid MBR signature 0x{signature:04X}'
            .format(signature=label.signature)))

    partitions = []
    errors = []
    index = 1
    entries = label.partitions
    for entry in entries:
        if not entry.empty:
            partitions.append(ReportedPartition.from_entry(
                f'{device_name}{index}', entry, entry.bootable))
            index += 1
    # Logical partitions are always numbered after every primary, regardless
    # of which slot held the extended partition
    for entry in entries:
        if entry.extended:
            walk = walk_extended(
                source, entry.start_sector_abs, device_name, index,
                detect_cycles=detect_cycles)
            partitions.extend(walk.partitions)
            index = walk.next_index
            if walk.error is not None:
                errors.append(walk.error)
    logger.info(lang.ngettext(
        'Found %d partition on %s', 'Found %d partitions on %s',
        len(partitions)), len(partitions), device_name)
    return PartitionTable(device_name, tuple(partitions), tuple(errors))
