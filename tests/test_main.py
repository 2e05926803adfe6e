# mbrls: a partition table lister for MBR partitioned disks
#
# Copyright (c) 2024 Dave Jones <dave.jones@canonical.com>
# Copyright (c) 2024 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0

import io
import logging
from textwrap import dedent
from unittest import mock

import pytest
from conftest import entry, make_disk

from mbrls.disk import DiskSource, ReportedPartition, assemble
from mbrls.main import *


MIXED_LISTING = dedent("""\
    Device       Boot  Start      End    Sectors  Size  Type
    mixed.img1    *    2048    4095    2048   1.0M W95 FAT32 (LBA)
    mixed.img2         4096    8191    4096   2.0M Linux
    mixed.img3         8192   16383    8192   4.0M Extended
    mixed.img4         8193    9216    1024   0.5M Linux swap / Solaris
    mixed.img5        10241   12288    2048   1.0M Linux
    """)


@pytest.fixture()
def no_configs(request):
    with mock.patch('mbrls.main.CONFIG_LOCATIONS', ()):
        yield


@pytest.fixture()
def in_disk_dir(request, monkeypatch, mixed_disk_file, no_configs):
    monkeypatch.chdir(mixed_disk_file.parent)
    yield mixed_disk_file.name


def test_help(capsys, no_configs):
    with pytest.raises(SystemExit) as err:
        main(['--version'])
    assert err.value.code == 0
    capture = capsys.readouterr()
    assert capture.out.strip() == '0.1'

    with pytest.raises(SystemExit) as err:
        main(['--help'])
    assert err.value.code == 0
    capture = capsys.readouterr()
    assert capture.out.startswith('usage:')


def test_error_exit_no_debug(capsys, monkeypatch):
    with \
        mock.patch('mbrls.main.get_parser') as get_parser, \
        monkeypatch.context() as m:

        m.delenv('DEBUG', raising=False)
        get_parser.side_effect = RuntimeError('trouble is bad')

        assert main(['foo.img']) == 1
        capture = capsys.readouterr()
        assert 'trouble is bad' in capture.err


def test_error_exit_with_debug(monkeypatch):
    with \
        mock.patch('mbrls.main.get_parser') as get_parser, \
        monkeypatch.context() as m:

        m.setenv('DEBUG', '1')
        get_parser.side_effect = RuntimeError('trouble is bad')

        with pytest.raises(RuntimeError):
            main(['foo.img'])


def test_error_exit_with_pdb(monkeypatch):
    with \
        mock.patch('mbrls.main.get_parser') as get_parser, \
        mock.patch('pdb.post_mortem') as post_mortem, \
        monkeypatch.context() as m:

        m.setenv('DEBUG', '2')
        get_parser.side_effect = RuntimeError('trouble is bad')

        assert main(['foo.img']) == 1
        assert post_mortem.called


def test_regular_operation(capsys, in_disk_dir):
    assert main([in_disk_dir]) == 0
    capture = capsys.readouterr()
    assert capture.out == MIXED_LISTING
    assert capture.err == ''


def test_no_header(capsys, in_disk_dir):
    assert main(['--no-header', in_disk_dir]) == 0
    capture = capsys.readouterr()
    assert capture.out == MIXED_LISTING.split('\n', 1)[1]


def test_header_from_config(capsys, in_disk_dir, tmp_path):
    conf = tmp_path / 'mbrls.conf'
    conf.write_text('[list]\nheader = no\n')
    with mock.patch('mbrls.main.CONFIG_LOCATIONS', (conf,)):
        assert main([in_disk_dir]) == 0
        capture = capsys.readouterr()
        assert not capture.out.startswith('Device')
        assert main(['--header', in_disk_dir]) == 0
        capture = capsys.readouterr()
        assert capture.out.startswith('Device')


def test_bad_config(capsys, in_disk_dir, tmp_path):
    conf = tmp_path / 'mbrls.conf'
    conf.write_text('[list]\nwidth = 80\n')
    with mock.patch('mbrls.main.CONFIG_LOCATIONS', (conf,)):
        assert main([in_disk_dir]) == 1
        capture = capsys.readouterr()
        assert 'invalid key width' in capture.err


def test_repeated_runs_single_handler(capsys, in_disk_dir):
    assert main([in_disk_dir]) == 0
    assert main(['--verbose', in_disk_dir]) == 0
    assert main(['--verbose', in_disk_dir]) == 0
    assert len(logging.getLogger('mbrls').handlers) == 1
    capture = capsys.readouterr()
    assert capture.out == MIXED_LISTING * 3
    assert capture.err.count(
        f'Reading partition table from {in_disk_dir}') == 2


def test_verbose(capsys, in_disk_dir):
    assert main(['--verbose', in_disk_dir]) == 0
    capture = capsys.readouterr()
    assert f'Reading partition table from {in_disk_dir}' in capture.err
    assert f'Found 5 partitions on {in_disk_dir}' in capture.err


def test_missing_device(capsys, tmp_path, no_configs):
    assert main([str(tmp_path / 'missing.img')]) == 1
    capture = capsys.readouterr()
    assert capture.out == ''
    assert 'missing.img' in capture.err


def test_invalid_signature(capsys, bad_disk_file, no_configs):
    assert main([str(bad_disk_file)]) == 1
    capture = capsys.readouterr()
    assert capture.out == ''
    assert 'Invalid MBR signature 0xDEAD' in capture.err


def test_broken_chain_partial_output(capsys, broken_chain_file, no_configs):
    device = str(broken_chain_file)
    assert main(['--quiet', device]) == 1
    capture = capsys.readouterr()
    lines = capture.out.splitlines()
    assert len(lines) == 4
    assert [line.split()[0] for line in lines[1:]] == [
        f'{device}1', f'{device}2', f'{device}3']
    assert 'Short read' in capture.err


def test_cycle_check(capsys, tmp_path, no_configs):
    path = tmp_path / 'loop.img'
    with path.open('wb') as output:
        make_disk(output, [entry(0x05, 4096, 8192)], {
            4096: (entry(0x83, 4097, 100), entry(0x05, 4096, 100)),
        })
    assert main(['--no-header', str(path)]) == 1
    capture = capsys.readouterr()
    assert len(capture.out.splitlines()) == 2
    assert 'links back' in capture.err


def test_format_partition():
    assert format_partition(ReportedPartition(
        name='/dev/sda1', bootable=True, start=2048, end=206847,
        sectors=204800, size='100.0M', part_type=0x83, type_label='Linux',
    )) == '/dev/sda1     *    2048  206847  204800 100.0M Linux'
    assert format_partition(ReportedPartition(
        name='/dev/sda2', bootable=False, start=206848, end=None,
        sectors=0, size='0.0M', part_type=0x07, type_label='HPFS/NTFS/exFAT',
    )) == '/dev/sda2        206848       -       0   0.0M HPFS/NTFS/exFAT'


def test_format_table(mixed_disk):
    table = assemble(DiskSource(mixed_disk), 'mixed.img')
    assert '\n'.join(format_table(table)) + '\n' == MIXED_LISTING
    assert list(format_table(table, header=False)) == (
        MIXED_LISTING.splitlines()[1:])
