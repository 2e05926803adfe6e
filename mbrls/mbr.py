# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

import struct
from collections import namedtuple

from . import lang
from .exc import TruncatedInput
from .tools import labels, formats
from .parttypes import EXTENDED_TYPES


# Structures sourced from the Wikipedia page on the Master Boot Record [1],
# specifically the "structure of a classic generic MBR". The same partition
# entry layout is re-used by the extended boot records chained from an
# extended partition [2]. Unlike the layout described there, the two entries of
# an extended boot record are read from the first 32 bytes of its sector (not
# from offset 446), and the next-record pointer is an absolute sector.
#
# [1]: https://en.wikipedia.org/wiki/Master_boot_record
# [2]: https://en.wikipedia.org/wiki/Extended_boot_record

BOOT_SIGNATURE = 0xAA55

DISK_LABEL = """
446s  boot_code
16s   partition_1
16s   partition_2
16s   partition_3
16s   partition_4
H     signature
"""

class DiskLabel(namedtuple('DiskLabel', labels(DISK_LABEL))):
    """
    A :func:`~collections.namedtuple` representing the fields of the `MBR
    sector`_: the opaque boot code, four raw partition entries, and the boot
    signature.

    No validation is performed; check :attr:`valid` (or compare
    :attr:`signature` against :data:`BOOT_SIGNATURE`) before trusting the
    entries.

    .. _MBR sector:
        https://en.wikipedia.org/wiki/Master_boot_record#Sector_layout
    """
    __slots__ = ()
    _FORMAT = struct.Struct(formats(DISK_LABEL))

    def __bytes__(self):
        return self._FORMAT.pack(*self)

    @classmethod
    def from_bytes(cls, s):
        """
        Construct a :class:`DiskLabel` from the byte-string *s*.
        """
        return cls(*cls._FORMAT.unpack(s))

    @classmethod
    def from_buffer(cls, buf, offset=0):
        """
        Construct a :class:`DiskLabel` from the specified *offset* (which
        defaults to 0) in the buffer protocol object, *buf*.
        """
        return cls(*cls._FORMAT.unpack_from(buf, offset))

    @property
    def valid(self):
        """
        Indicates whether the boot signature is correct.
        """
        return self.signature == BOOT_SIGNATURE

    @property
    def partitions(self):
        """
        Returns a sequence of the decoded :class:`PartitionEntry` records in
        the label. This is always 4 elements long; empty slots are included
        (with a :attr:`~PartitionEntry.partition_type` of 0).
        """
        return tuple(
            PartitionEntry.from_bytes(buf)
            for buf in (
                self.partition_1,
                self.partition_2,
                self.partition_3,
                self.partition_4,
            )
        )


PARTITION_ENTRY = """
B     boot_indicator
B     start_head
B     start_sector
B     start_cylinder
B     partition_type
B     end_head
B     end_sector
B     end_cylinder
I     start_sector_abs
I     total_sectors
"""

class PartitionEntry(namedtuple('PartitionEntry', labels(PARTITION_ENTRY))):
    """
    A :func:`~collections.namedtuple` representing the fields of an `MBR
    partition entry`_.

    The CHS fields are decoded but otherwise ignored; only
    :attr:`start_sector_abs` and :attr:`total_sectors` are used to locate the
    partition.

    .. _MBR partition entry:
        https://en.wikipedia.org/wiki/Master_boot_record#Partition_table_entries
    """
    __slots__ = ()
    _FORMAT = struct.Struct(formats(PARTITION_ENTRY))

    def __bytes__(self):
        return self._FORMAT.pack(*self)

    @classmethod
    def from_bytes(cls, s):
        """
        Construct a :class:`PartitionEntry` from the byte-string *s*.
        """
        return cls(*cls._FORMAT.unpack(s))

    @classmethod
    def from_buffer(cls, buf, offset=0):
        """
        Construct a :class:`PartitionEntry` from the specified *offset* (which
        defaults to 0) in the buffer protocol object, *buf*.
        """
        return cls(*cls._FORMAT.unpack_from(buf, offset))

    @property
    def empty(self):
        return self.partition_type == 0

    @property
    def bootable(self):
        return self.boot_indicator == 0x80

    @property
    def extended(self):
        return self.partition_type in EXTENDED_TYPES

    @property
    def end_sector_abs(self):
        """
        The LBA of the last sector of the partition, or :data:`None` if the
        partition has no sectors.
        """
        if self.total_sectors:
            return self.start_sector_abs + self.total_sectors - 1
        return None


EXTENDED_LINK = """
16s   logical
16s   next_link
"""

class ExtendedLinkRecord(namedtuple('ExtendedLinkRecord',
                                    labels(EXTENDED_LINK))):
    """
    A :func:`~collections.namedtuple` representing the two entries of an
    `extended boot record`_, read from the first 32 bytes of its sector (at
    offset 0, not 446). The first describes the logical partition held by
    the record, the second (when it is of an extended type) points to the
    absolute sector of the next record in the chain.

    .. _extended boot record:
        https://en.wikipedia.org/wiki/Extended_boot_record
    """
    __slots__ = ()
    _FORMAT = struct.Struct(formats(EXTENDED_LINK))

    def __bytes__(self):
        return self._FORMAT.pack(*self)

    @classmethod
    def from_bytes(cls, s):
        """
        Construct a :class:`ExtendedLinkRecord` from the byte-string *s*.
        """
        return cls(*cls._FORMAT.unpack(s))

    @property
    def partitions(self):
        return (
            PartitionEntry.from_bytes(self.logical),
            PartitionEntry.from_bytes(self.next_link),
        )

    @property
    def next_sector(self):
        """
        The absolute sector of the next record in the chain, or 0 if this is
        the last record.
        """
        link = PartitionEntry.from_bytes(self.next_link)
        if link.extended:
            return link.start_sector_abs
        return 0


def _decode(cls, buf, what):
    size = cls._FORMAT.size
    if len(buf) < size:
        raise TruncatedInput(lang._(
            '{what} requires {size} bytes but only {length} were given'
            .format(what=what, size=size, length=len(buf))))
    return cls.from_bytes(bytes(buf[:size]))


def decode_label(buf):
    """
    Decode the first 512 bytes of *buf* as a :class:`DiskLabel`. Raises
    :exc:`~mbrls.exc.TruncatedInput` if *buf* is too short. The signature is
    *not* checked.
    """
    return _decode(DiskLabel, buf, lang._('Disk label'))


def decode_entry(buf):
    """
    Decode the first 16 bytes of *buf* as a :class:`PartitionEntry`. Raises
    :exc:`~mbrls.exc.TruncatedInput` if *buf* is too short.
    """
    return _decode(PartitionEntry, buf, lang._('Partition entry'))


def decode_link(buf):
    """
    Decode the first 32 bytes of *buf* as an :class:`ExtendedLinkRecord`.
    Raises :exc:`~mbrls.exc.TruncatedInput` if *buf* is too short.
    """
    return _decode(ExtendedLinkRecord, buf, lang._('Extended boot record'))
