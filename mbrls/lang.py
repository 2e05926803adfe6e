# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

import locale
import gettext


_ = gettext.gettext
ngettext = gettext.ngettext

def init():
    """
    Set the process locale from the environment (falling back to "C" when the
    environment's locale is unavailable) and bind the message catalog for
    :mod:`mbrls`.
    """
    try:
        locale.setlocale(locale.LC_ALL, '')
    except locale.Error:
        locale.setlocale(locale.LC_ALL, 'C')

    gettext.textdomain(__package__)
