# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

"""
The exceptions raised while decoding and traversing partition tables. All
derive from :exc:`PartitionTableError` which is itself a :exc:`ValueError`
so callers that only care about "bad disk" can catch that.
"""


class PartitionTableError(ValueError):
    "Base class for all errors raised while reading a partition table."


class TruncatedInput(PartitionTableError):
    """
    Raised when a buffer holds fewer bytes than the record being decoded
    requires.
    """


class InvalidSignature(PartitionTableError):
    """
    Raised when the boot signature at the end of the MBR is not ``0xAA55``.
    """


class CycleDetected(PartitionTableError):
    """
    Raised when a chain of extended boot records links back to a sector that
    has already been visited.
    """


class SeekFailure(PartitionTableError, OSError):
    "Raised when the byte source rejects a seek."


class ReadFailure(PartitionTableError, OSError):
    "Raised when the byte source returns fewer bytes than requested."
