import io

import pytest

from mbrls.mbr import DiskLabel, PartitionEntry, BOOT_SIGNATURE


def entry(part_type=0, start=0, sectors=0, *, boot=0):
    return PartitionEntry(
        boot_indicator=boot,
        start_head=0, start_sector=0, start_cylinder=0,
        partition_type=part_type,
        end_head=0, end_sector=0, end_cylinder=0,
        start_sector_abs=start,
        total_sectors=sectors)


def label(*entries, signature=BOOT_SIGNATURE):
    entries = list(entries) + [entry()] * (4 - len(entries))
    return bytes(DiskLabel(
        b'\x00' * 446,
        *(bytes(e) for e in entries),
        signature))


def make_disk(output, primaries, ebrs=None, *, signature=BOOT_SIGNATURE):
    """
    Write a disk to the binary file-like *output* with an MBR containing the
    *primaries* (a list of up to 4 :class:`PartitionEntry`), and extended boot
    records *ebrs*, a mapping of absolute sector to a (logical, next_link)
    tuple of entries.
    """
    output.seek(0)
    output.write(label(*primaries, signature=signature))
    for sector, (logical, next_link) in (ebrs or {}).items():
        output.seek(sector * 512)
        # The link record occupies the first 32 bytes of the EBR sector
        output.write(bytes(logical) + bytes(next_link))
    output.seek(0)


# The layout shared by the mixed_disk fixtures:
#
# 1 -- bootable FAT32 (LBA), 1MB
# 2 -- Linux, 2MB
# 3 -- extended, 4MB, containing:
#   4 -- Linux swap, 512KB
#   5 -- Linux, 1MB
MIXED_PRIMARIES = [
    entry(0x0C, 2048, 2048, boot=0x80),
    entry(0x83, 4096, 4096),
    entry(0x05, 8192, 8192),
]
MIXED_EBRS = {
    8192: (entry(0x82, 8193, 1024), entry(0x05, 10240, 3072)),
    10240: (entry(0x83, 10241, 2048), entry()),
}


@pytest.fixture()
def simple_disk(request):
    buf = io.BytesIO()
    make_disk(buf, [entry(0x83, 2048, 204800)])
    return buf


@pytest.fixture()
def mixed_disk(request):
    buf = io.BytesIO()
    make_disk(buf, MIXED_PRIMARIES, MIXED_EBRS)
    return buf


@pytest.fixture(scope='session')
def mixed_disk_file(request, tmp_path_factory):
    tmp = tmp_path_factory.mktemp('mixed_disk')
    path = tmp / 'mixed.img'
    with path.open('wb') as output:
        make_disk(output, MIXED_PRIMARIES, MIXED_EBRS)
        output.seek(16384 * 512 - 1)
        output.write(b'\x00')
    path.chmod(0o444)
    return path


@pytest.fixture()
def bad_disk_file(request, tmp_path):
    path = tmp_path / 'bad.img'
    with path.open('wb') as output:
        make_disk(output, [entry(0x83, 2048, 2048)], signature=0xDEAD)
    return path


@pytest.fixture()
def broken_chain_file(request, tmp_path):
    # The second EBR points beyond the end of the image
    path = tmp_path / 'broken.img'
    with path.open('wb') as output:
        make_disk(output, [
            entry(0x83, 2048, 2048),
            entry(0x0F, 4096, 4096),
        ], {
            4096: (entry(0x83, 4097, 1024), entry(0x05, 65536, 1024)),
        })
    return path
