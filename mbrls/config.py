# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

import os
from pathlib import Path
from contextlib import suppress
from configparser import ConfigParser
from argparse import ArgumentParser
from copy import deepcopy


# The locations to attempt to read the configuration from
XDG_CONFIG_HOME = Path(os.environ.get('XDG_CONFIG_HOME', '~/.config'))
CONFIG_LOCATIONS = (
    Path('/etc/mbrls.conf'),
    Path('/usr/local/etc/mbrls.conf'),
    Path(XDG_CONFIG_HOME / 'mbrls.conf'),
    Path('~/.mbrls.conf'),
)


class ConfigArgumentParser(ArgumentParser):
    """
    A variant of :class:`~argparse.ArgumentParser` that links arguments to
    specified keys in a :class:`~configparser.ConfigParser` instance.

    Typical usage is to construct an instance of :class:`ConfigArgumentParser`,
    define the parameters and parameter groups on it, associating them with
    configuration section and key names as appropriate, then call
    :meth:`read_configs` to parse a set of configuration files. These will be
    checked against the (optional) *template* configuration passed to the
    initializer, which defines the set of valid sections and keys expected.

    The resulting :class:`~configparser.ConfigParser` forms the "base"
    configuration, prior to argument parsing. This is passed to
    :meth:`set_defaults_from` to set the argument defaults, after which
    :meth:`~argparse.ArgumentParser.parse_args` may be called to parse the
    command line, with any options given there overriding the configuration.
    For example::

        >>> from pathlib import Path
        >>> from mbrls.config import *
        >>> parser = ConfigArgumentParser()
        >>> group = parser.add_argument_group('list', section='list')
        >>> group.add_argument('--header', action='store_true', key='header')
        >>> Path('defaults.conf').write_text('''
        ... [list]
        ... header = no
        ... ''')
        >>> defaults = parser.read_configs(['defaults.conf'])
        >>> parser.set_defaults_from(defaults)
        >>> parser.get_default('header')
        False
        >>> parser.parse_args(['--header']).header
        True
    """
    def __init__(self, *args, template=None, **kwargs):
        super().__init__(*args, **kwargs)
        if template is not None:
            self._template = self._get_config_parser()
            self._template.read(template)
        else:
            self._template = None
        self._config_map = {}

    def _get_config_parser(self):
        """
        Generate and return a new :class:`~configparser.ConfigParser` with
        appropriate configuration (interpolation, delimiters, etc.) for the
        desired parsing behaviour.
        """
        return ConfigParser(
            delimiters=('=',), empty_lines_in_values=False,
            interpolation=None, strict=False)

    def add_argument(self, *args, section=None, key=None, **kwargs):
        """
        Adds *section* and *key* parameters. These link the new argument to the
        specified configuration entry.

        The default for the argument can be specified directly as usual, or can
        be read from the configuration (see :meth:`read_configs` and
        :meth:`set_defaults_from`).
        """
        return self._add_config_action(
            *args, method=super().add_argument, section=section, key=key,
            **kwargs)

    def add_argument_group(self, title=None, description=None, section=None):
        """
        Adds a new argument group object and returns it.

        The new argument group will likewise accept *section* and *key*
        parameters on its :meth:`add_argument` method. The *section* parameter
        will default to the value of the *section* parameter passed to this
        method (but may be explicitly overridden).
        """
        group = super().add_argument_group(title=title, description=description)
        def add_argument(*args, section=section, key=None,
                         _add_arg=group.add_argument, **kwargs):
            return self._add_config_action(
                *args, method=_add_arg, section=section, key=key, **kwargs)
        group.add_argument = add_argument
        return group

    def _add_config_action(self, *args, method, section, key, **kwargs):
        assert callable(method), 'method must be a callable'
        if (section is None) != (key is None):
            raise ValueError('section and key must be specified together')
        try:
            if kwargs['action'] in ('store_true', 'store_false'):
                type = boolean
        except KeyError:
            type = kwargs.get('type', str)
        action = method(*args, **kwargs)
        if key is not None:
            with suppress(KeyError):
                if self._config_map[action.dest] != (section, key, type):
                    raise ValueError(
                        'section and key must match for all equivalent dest '
                        'values')
            self._config_map[action.dest] = (section, key, type)
        return action

    def read_configs(self, paths):
        """
        Constructs a :class:`~configparser.ConfigParser` instance, and reads
        the configuration files specified by *paths*, a list of
        :class:`~pathlib.Path`-like objects, into it. Files that do not exist
        are silently skipped.

        If a template was given on construction, the method checks the
        configuration for valid section and key names, raising
        :exc:`ValueError` on invalid items.

        The return value is the configuration parser instance.
        """
        if self._template is None:
            config = self._get_config_parser()
        else:
            config = deepcopy(self._template)
        valid = {
            section: set(keys)
            for section, keys in config.items()
        }

        # Configuration files are read strictly in order to permit the
        # customary hierarchy (/etc, /usr/local/etc, ~) to override each other
        for path in paths:
            path = Path(path).expanduser()
            config.read(path)
            if self._template is not None:
                for section, keys in config.items():
                    if section not in valid:
                        raise ValueError(
                            f'{path}: invalid section [{section}]')
                    for key in set(keys) - valid[section]:
                        raise ValueError(
                            f'{path}: invalid key {key} in [{section}]')
        return config

    def set_defaults_from(self, config):
        """
        Sets defaults for all arguments from their associated configuration
        entries in *config*.
        """
        kwargs = {
            dest:
                config.getboolean(section, key)
                if type is boolean else
                config[section][key]
            for dest, (section, key, type) in self._config_map.items()
            if section in config
            and key in config[section]
        }
        return super().set_defaults(**kwargs)


def boolean(s):
    """
    Convert the string *s* to a :class:`bool`. A typical set of case
    insensitive strings are accepted: "yes", "y", "true", "t", and "1" are
    converted to :data:`True`, while "no", "n", "false", "f", and "0" convert
    to :data:`False`. Other values will result in :exc:`ValueError`.
    """
    try:
        return {
            'n':     False,
            'no':    False,
            'f':     False,
            'false': False,
            '0':     False,
            'y':     True,
            'yes':   True,
            't':     True,
            'true':  True,
            '1':     True,
        }[str(s).strip().lower()]
    except KeyError:
        raise ValueError(f'invalid boolean value: {s}')
