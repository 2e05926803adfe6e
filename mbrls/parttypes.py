# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

from .tools import FrozenDict


# A deliberately small subset of the partition type identifiers listed at [1];
# anything else is reported as "Unknown"
#
# [1]: https://en.wikipedia.org/wiki/Partition_type

PARTITION_TYPES = FrozenDict({
    0x05: 'Extended',
    0x07: 'HPFS/NTFS/exFAT',
    0x0B: 'W95 FAT32',
    0x0C: 'W95 FAT32 (LBA)',
    0x82: 'Linux swap / Solaris',
    0x83: 'Linux',
    0xA0: 'BIOS boot',
    0xEF: 'EFI System',
})

UNKNOWN_TYPE = 'Unknown'

# Types which mark a partition (or the second entry of an extended boot record)
# as the head of a chain of extended boot records: CHS and LBA addressed
EXTENDED_TYPES = frozenset({0x05, 0x0F})


def type_label(part_type):
    """
    Return the descriptive label for the one-byte partition type identifier
    *part_type*. Unrecognized identifiers return "Unknown".
    """
    return PARTITION_TYPES.get(part_type, UNKNOWN_TYPE)
