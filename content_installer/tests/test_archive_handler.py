# Path: content_installer/tests/test_archive_handler.py
"""Archive format detection, external tools and built-in fallback."""

import shutil

import pytest

from content_installer.engine.extraction.archive_handler import ArchiveHandler, detect_archive_format
from content_installer.engine.extraction.constants import METHOD_BUILTIN, METHOD_EXTERNAL
from content_installer.tests.helpers import read_tree, tar_bytes, write_tgz, write_zip

FIXTURE_ENTRIES = [
    ('top.txt', b'top level\n'),
    ('dir/', None),
    ('dir/inner.txt', b'inner file\n'),
]


@pytest.mark.parametrize('name, expected', [
    ('pkg.zip', 'zip'),
    ('pkg.tar', 'tar'),
    ('pkg.tar.gz', 'tar.gz'),
    ('PKG.TGZ', 'tar.gz'),
    ('pkg.tar.bz2', 'tar.bz2'),
    ('pkg.tbz2', 'tar.bz2'),
    ('pkg.tar.xz', 'tar.xz'),
    ('pkg.txz', 'tar.xz'),
    ('pkg.json', None),
    ('pkg.gz', None),
])
def test_detect_archive_format(name, expected):
    """Test format detection from file name suffixes."""
    assert detect_archive_format(name) == expected


def test_hint_name_wins_over_cache_file_name(settings, tmp_path):
    """Test the source name hint decides the format before the on-disk name."""
    handler = ArchiveHandler(settings())
    assert handler.detect_format(tmp_path / 'abc123.bin', 'pkg.tgz') == 'tar.gz'
    assert handler.detect_format(tmp_path / 'pkg.zip', 'download') == 'zip'


async def test_builtin_fallback_extracts_tgz(settings, tmp_path):
    """Test forced built-in extraction of a .tar.gz fixture."""
    archive = write_tgz(tmp_path / 'pkg.tar.gz', FIXTURE_ENTRIES)
    handler = ArchiveHandler(settings(force_builtin_extract=True))

    result = await handler.extract(archive, tmp_path / 'out')

    assert result.success, result.error_message
    assert result.method == METHOD_BUILTIN
    assert result.files_extracted == 2
    assert read_tree(tmp_path / 'out') == {
        'top.txt': 'top level\n',
        'dir/inner.txt': 'inner file\n',
    }


async def test_builtin_fallback_extracts_plain_tar(settings, tmp_path):
    """Test built-in extraction of an uncompressed tar."""
    archive = tmp_path / 'pkg.tar'
    archive.write_bytes(tar_bytes(FIXTURE_ENTRIES))

    result = await ArchiveHandler(settings(force_builtin_extract=True)).extract(archive, tmp_path / 'out')

    assert result.success
    assert (tmp_path / 'out' / 'dir' / 'inner.txt').read_bytes() == b'inner file\n'


async def test_builtin_used_when_tar_missing(settings, tmp_path, monkeypatch):
    """Test fallback to the built-in decoder when no tar utility is found."""
    monkeypatch.setattr(shutil, 'which', lambda name: None)
    archive = write_tgz(tmp_path / 'pkg.tgz', FIXTURE_ENTRIES)

    result = await ArchiveHandler(settings()).extract(archive, tmp_path / 'out')

    assert result.success
    assert result.method == METHOD_BUILTIN


@pytest.mark.skipif(shutil.which('tar') is None, reason='tar utility not installed')
async def test_external_tar_preferred(settings, tmp_path):
    """Test the tar utility is used when available."""
    archive = write_tgz(tmp_path / 'pkg.tar.gz', FIXTURE_ENTRIES)

    result = await ArchiveHandler(settings()).extract(archive, tmp_path / 'out')

    assert result.success, result.error_message
    assert result.method == METHOD_EXTERNAL
    assert read_tree(tmp_path / 'out')['dir/inner.txt'] == 'inner file\n'


@pytest.mark.skipif(shutil.which('unzip') is None, reason='unzip utility not installed')
async def test_external_unzip_extracts_zip(settings, tmp_path):
    """Test .zip archives are unpacked through unzip."""
    archive = write_zip(tmp_path / 'pkg.zip', FIXTURE_ENTRIES)

    result = await ArchiveHandler(settings()).extract(archive, tmp_path / 'out')

    assert result.success, result.error_message
    assert result.method == METHOD_EXTERNAL
    assert read_tree(tmp_path / 'out') == {
        'top.txt': 'top level\n',
        'dir/inner.txt': 'inner file\n',
    }


async def test_zip_without_unzip_fails(settings, tmp_path, monkeypatch):
    """Test a .zip with no unzip utility is a failed extraction."""
    monkeypatch.setattr(shutil, 'which', lambda name: None)
    archive = write_zip(tmp_path / 'pkg.zip', FIXTURE_ENTRIES)

    result = await ArchiveHandler(settings()).extract(archive, tmp_path / 'out')

    assert not result.success
    assert "No 'unzip' utility" in result.error_message


@pytest.mark.parametrize('name', ['pkg.zip', 'pkg.tar.bz2', 'pkg.tar.xz'])
async def test_builtin_rejects_unsupported_formats(settings, tmp_path, name):
    """Test the built-in decoder refuses zip, bz2 and xz."""
    archive = tmp_path / name
    archive.write_bytes(b'irrelevant')

    result = await ArchiveHandler(settings(force_builtin_extract=True)).extract(archive, tmp_path / 'out')

    assert not result.success
    assert 'built-in extractor does not support' in result.error_message


async def test_unknown_format_rejected(settings, tmp_path):
    """Test unknown suffixes fail before anything is created."""
    archive = tmp_path / 'pkg.rar'
    archive.write_bytes(b'rar')

    result = await ArchiveHandler(settings()).extract(archive, tmp_path / 'out')

    assert not result.success
    assert 'Unsupported archive format' in result.error_message
    assert not (tmp_path / 'out').exists()


async def test_corrupt_archive_reports_failure(settings, tmp_path):
    """Test a corrupt archive yields a failed ExtractionResult."""
    archive = tmp_path / 'pkg.tar.gz'
    archive.write_bytes(b'definitely not gzip')

    result = await ArchiveHandler(settings()).extract(archive, tmp_path / 'out')

    assert not result.success
    assert result.error_message


async def test_dry_run_writes_nothing(settings, tmp_path):
    """Test dry-run extraction leaves the target absent."""
    archive = write_tgz(tmp_path / 'pkg.tar.gz', FIXTURE_ENTRIES)

    result = await ArchiveHandler(settings(dry_run=True)).extract(archive, tmp_path / 'out')

    assert result.success
    assert not (tmp_path / 'out').exists()
