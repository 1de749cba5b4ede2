# Path: content_installer/tests/test_coordinator.py
"""End-to-end install runs."""

import errno
import gzip
import json
import shutil
from pathlib import Path

import pytest
from aiohttp import web

from content_installer.engine.atomic_installer import AtomicInstaller
from content_installer.engine.coordinator import InstallCoordinator
from content_installer.tests.helpers import read_tree, tar_bytes, write_tgz, write_tree, write_zip


def document(engines=None, extensions=None, scenarios=None, install=None, supported=True):
    return {
        'engines': engines or {},
        'extensions': extensions or {},
        'scenarios': scenarios or {},
        'versions': {'13': {'supported': supported, 'install': install or {}}},
    }


@pytest.fixture
def run_installer(settings, write_document):
    """Write the document and run one install; returns the report."""
    async def _run(doc, **overrides):
        write_document(doc)
        coordinator = InstallCoordinator(settings(**{'version': '13.307', **overrides}))
        try:
            return await coordinator.run()
        finally:
            await coordinator.close()
    return _run


@pytest.fixture
def copy_counter(monkeypatch):
    calls = []
    original = AtomicInstaller._copy_tree

    async def counting(self, source_dir, staging):
        calls.append(source_dir)
        return await original(self, source_dir, staging)

    monkeypatch.setattr(AtomicInstaller, '_copy_tree', counting)
    return calls


async def test_local_directory_installed_once_then_skipped(run_installer, tmp_path, copy_counter):
    """Test an unchanged directory is copied once and then skipped."""
    source = write_tree(tmp_path / 'src' / 'sys1', {'system.json': '{"id": "sys1"}', 'lang/en.json': '{}'})
    doc = document(
        engines={'sys1': {'path': str(source)}},
        install={'engines': {'sys1': {}}},
    )

    first = await run_installer(doc)
    second = await run_installer(doc)

    assert first.outcome_for('engine', 'sys1').status == 'installed'
    assert second.outcome_for('engine', 'sys1').status == 'skipped'
    assert len(copy_counter) == 1
    assert read_tree(tmp_path / 'data' / 'engines' / 'sys1') == {
        'system.json': '{"id": "sys1"}',
        'lang/en.json': '{}',
    }


async def test_edited_source_reinstalled(run_installer, tmp_path):
    """Test install, skip, then reinstall after an edit."""
    source = write_tree(tmp_path / 'src' / 'sys1', {'system.json': '{"version": 1}'})
    doc = document(engines={'sys1': {'path': str(source)}}, install={'engines': {'sys1': {}}})
    destination = tmp_path / 'data' / 'engines' / 'sys1'

    assert (await run_installer(doc)).outcome_for('engine', 'sys1').status == 'installed'
    assert (await run_installer(doc)).outcome_for('engine', 'sys1').status == 'skipped'

    (source / 'system.json').write_text('{"version": 2, "edited": true}')
    third = await run_installer(doc)

    assert third.outcome_for('engine', 'sys1').status == 'installed'
    assert (destination / 'system.json').read_text() == '{"version": 2, "edited": true}'


async def test_deleted_destination_reinstalled_even_if_unchanged(run_installer, tmp_path):
    """Test a deleted destination is reinstalled."""
    source = write_tree(tmp_path / 'src' / 'sys1', {'a.txt': 'a'})
    doc = document(engines={'sys1': {'path': str(source)}}, install={'engines': {'sys1': {}}})
    await run_installer(doc)

    destination = tmp_path / 'data' / 'engines' / 'sys1'
    (destination / 'a.txt').unlink()
    destination.rmdir()

    report = await run_installer(doc)

    assert report.outcome_for('engine', 'sys1').status == 'installed'
    assert (destination / 'a.txt').read_text() == 'a'


async def test_local_archive_unwrapped(run_installer, tmp_path):
    """Test a local .tar.gz installs unwrapped and is skipped next run."""
    archive = write_tgz(tmp_path / 'src' / 'mod-1.0.tar.gz', [
        ('mod-1.0/', None),
        ('mod-1.0/module.json', b'{"id": "mod"}'),
    ])
    doc = document(extensions={'mod': {'path': str(archive)}}, install={'extensions': {'mod': {}}})

    report = await run_installer(doc, force_builtin_extract=True)

    assert report.outcome_for('extension', 'mod').status == 'installed'
    assert read_tree(tmp_path / 'data' / 'extensions' / 'mod') == {'module.json': '{"id": "mod"}'}

    again = await run_installer(doc, force_builtin_extract=True)
    assert again.outcome_for('extension', 'mod').status == 'skipped'


async def test_corrupt_archive_keeps_previous_tree(run_installer, tmp_path):
    """Test a corrupt archive keeps the previous tree and no staging."""
    archive = write_tgz(tmp_path / 'src' / 'mod.tar.gz', [('module.json', b'v1')])
    doc = document(extensions={'mod': {'path': str(archive)}}, install={'extensions': {'mod': {}}})
    await run_installer(doc)

    archive.write_bytes(gzip.compress(tar_bytes([('module.json', b'v2')]))[:40])
    report = await run_installer(doc)

    outcome = report.outcome_for('extension', 'mod')
    assert outcome.status == 'failed'
    assert read_tree(tmp_path / 'data' / 'extensions' / 'mod') == {'module.json': 'v1'}
    assert not [p for p in (tmp_path / 'data' / 'extensions').iterdir() if p.name.startswith('.staging-')]


async def test_failed_install_retried_next_run(run_installer, tmp_path, monkeypatch):
    """Test a failed install is retried on the next run."""
    source = write_tree(tmp_path / 'src' / 'sys1', {'a.txt': 'a'})
    doc = document(engines={'sys1': {'path': str(source)}}, install={'engines': {'sys1': {}}})
    original = AtomicInstaller._copy_tree

    async def failing(self, source_dir, staging):
        raise OSError('copy failed')

    monkeypatch.setattr(AtomicInstaller, '_copy_tree', failing)
    assert (await run_installer(doc)).outcome_for('engine', 'sys1').status == 'failed'

    monkeypatch.setattr(AtomicInstaller, '_copy_tree', original)
    assert (await run_installer(doc)).outcome_for('engine', 'sys1').status == 'installed'


async def test_switching_source_back_reinstalls(run_installer, tmp_path):
    """Test switching versions back to an earlier source reinstalls it."""
    first = write_tree(tmp_path / 'src' / 'a', {'v.txt': 'A'})
    second = write_tree(tmp_path / 'src' / 'b', {'v.txt': 'B'})
    doc = document(engines={'sys1': {'path': str(first)}}, install={'engines': {'sys1': {}}})
    doc['versions']['12'] = {'install': {'engines': {'sys1': {'path': str(second)}}}}
    destination = tmp_path / 'data' / 'engines' / 'sys1'

    statuses = []
    for version in ('13', '12', '13'):
        report = await run_installer(doc, version=version)
        statuses.append(report.outcome_for('engine', 'sys1').status)

    assert statuses == ['installed', 'installed', 'installed']
    assert read_tree(destination) == {'v.txt': 'A'}


@pytest.mark.skipif(shutil.which('unzip') is None, reason='unzip utility not installed')
async def test_local_zip_unwrapped(run_installer, tmp_path):
    """Test a local .zip installs through unzip with its root folder unwrapped."""
    archive = write_zip(tmp_path / 'src' / 'mod-1.0.zip', [
        ('mod-1.0/', None),
        ('mod-1.0/module.json', b'{"id": "mod"}'),
        ('mod-1.0/lang/en.json', b'{}'),
    ])
    doc = document(extensions={'mod': {'path': str(archive)}}, install={'extensions': {'mod': {}}})

    report = await run_installer(doc)

    assert report.outcome_for('extension', 'mod').status == 'installed'
    assert read_tree(tmp_path / 'data' / 'extensions' / 'mod') == {
        'module.json': '{"id": "mod"}',
        'lang/en.json': '{}',
    }


async def test_root_created_concurrently_is_tolerated(run_installer, tmp_path, monkeypatch):
    """Test a kind root created concurrently does not stop the run."""
    source = write_tree(tmp_path / 'src' / 'sys1', {'a.txt': 'a'})
    doc = document(engines={'sys1': {'path': str(source)}}, install={'engines': {'sys1': {}}})
    roots = {tmp_path / 'data' / name for name in ('engines', 'extensions', 'scenarios')}
    raced = []
    original_mkdir = Path.mkdir

    def racing_mkdir(self, *args, **kwargs):
        if self in roots and self not in raced:
            raced.append(self)
            original_mkdir(self, parents=True, exist_ok=True)
            raise FileExistsError(errno.EEXIST, 'File exists', str(self))
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, 'mkdir', racing_mkdir)
    report = await run_installer(doc)

    assert set(raced) == roots
    assert report.outcome_for('engine', 'sys1').status == 'installed'
    assert (tmp_path / 'data' / 'engines' / 'sys1' / 'a.txt').read_text() == 'a'


async def test_uncreatable_root_fails_each_package(run_installer, tmp_path, caplog):
    """Test an uncreatable data tree is logged and fails each package."""
    source = write_tree(tmp_path / 'src' / 'sys1', {'a.txt': 'a'})
    (tmp_path / 'data').write_text('a file where the data tree should be')
    doc = document(
        engines={'sys1': {'path': str(source)}},
        scenarios={'demo': {'path': str(source)}},
        install={'engines': {'sys1': {}}, 'scenarios': {'demo': {}}},
    )

    report = await run_installer(doc)

    assert report.outcome_for('engine', 'sys1').status == 'failed'
    assert report.outcome_for('scenario', 'demo').status == 'failed'
    assert 'Failed to create directory' in caplog.text
    assert (tmp_path / 'data').is_file()


async def test_purge_after_install(run_installer, tmp_path):
    """Test stale packages are purged and sandbox is kept."""
    scenarios_root = tmp_path / 'data' / 'scenarios'
    for name in ('a', 'b', 'old', 'sandbox'):
        (scenarios_root / name).mkdir(parents=True)
    sources = {name: write_tree(tmp_path / 'src' / name, {'scene.json': name}) for name in ('a', 'b')}
    doc = document(
        scenarios={name: {'path': str(path)} for name, path in sources.items()},
        install={'scenarios': {'a': {}, 'b': {}}},
    )

    report = await run_installer(doc)

    assert report.purged['scenario'] == ['old']
    assert sorted(p.name for p in scenarios_root.iterdir()) == ['a', 'b', 'sandbox']


async def test_failed_package_not_purged_same_run(run_installer, tmp_path):
    """Test a failed package keeps its previous tree."""
    engines_root = tmp_path / 'data' / 'engines'
    (engines_root / 'broken').mkdir(parents=True)
    (engines_root / 'broken' / 'previous.txt').write_text('previous')
    doc = document(
        engines={'broken': {'path': str(tmp_path / 'missing')}},
        install={'engines': {'broken': {}}},
    )

    report = await run_installer(doc)

    assert report.outcome_for('engine', 'broken').status == 'failed'
    assert (engines_root / 'broken' / 'previous.txt').read_text() == 'previous'


async def test_kind_without_install_map_not_purged(run_installer, tmp_path):
    """Test a kind without an install map is left alone."""
    (tmp_path / 'data' / 'extensions' / 'kept').mkdir(parents=True)

    report = await run_installer(document(install={'engines': {}}))

    assert report.purged['extension'] == []
    assert (tmp_path / 'data' / 'extensions' / 'kept').is_dir()


async def test_one_failure_does_not_stop_others(run_installer, tmp_path):
    """Test failures are isolated per package."""
    good = write_tree(tmp_path / 'src' / 'good', {'a.txt': 'a'})
    plain = tmp_path / 'src' / 'notes.txt'
    plain.write_text('not a package')
    doc = document(
        engines={
            'missing': {'path': str(tmp_path / 'nowhere')},
            'plain': {'path': str(plain)},
            'nosource': {},
            'good': {'path': str(good)},
        },
        install={'engines': {'missing': {}, 'plain': {}, 'nosource': {}, 'invalid': 'yes', 'good': {}}},
    )

    report = await run_installer(doc)

    statuses = {o.package_id: o.status for o in report.outcomes['engine']}
    assert list(statuses) == ['missing', 'plain', 'nosource', 'invalid', 'good']
    assert statuses == {
        'missing': 'failed',
        'plain': 'failed',
        'nosource': 'failed',
        'invalid': 'failed',
        'good': 'installed',
    }
    assert report.failed_count == 4
    assert 'does not exist' in report.outcome_for('engine', 'missing').error


async def test_override_only_entry_installed(run_installer, tmp_path):
    """Test an override-only entry installs."""
    source = write_tree(tmp_path / 'src' / 'extra', {'a.txt': 'a'})
    doc = document(install={'extensions': {'extra': {'path': str(source)}}})

    report = await run_installer(doc)

    assert report.outcome_for('extension', 'extra').status == 'installed'


async def test_version_override_path_wins(run_installer, tmp_path):
    """Test the per-version path replaces the top-level path."""
    old = write_tree(tmp_path / 'src' / 'v12', {'v.txt': '12'})
    new = write_tree(tmp_path / 'src' / 'v13', {'v.txt': '13'})
    doc = document(
        engines={'sys1': {'path': str(old)}},
        install={'engines': {'sys1': {'path': str(new)}}},
    )

    await run_installer(doc)

    assert (tmp_path / 'data' / 'engines' / 'sys1' / 'v.txt').read_text() == '13'


async def test_dry_run_mutates_nothing(run_installer, tmp_path):
    """Test a dry run reports intent and writes nothing."""
    source = write_tree(tmp_path / 'src' / 'sys1', {'a.txt': 'a'})
    (tmp_path / 'data' / 'engines' / 'stale').mkdir(parents=True)
    doc = document(engines={'sys1': {'path': str(source)}}, install={'engines': {'sys1': {}}})

    report = await run_installer(doc, dry_run=True)

    assert report.dry_run
    assert report.outcome_for('engine', 'sys1').status == 'installed'
    assert report.purged['engine'] == ['stale']
    assert sorted(p.name for p in (tmp_path / 'data' / 'engines').iterdir()) == ['stale']
    assert not (tmp_path / 'cache').exists()


async def test_presence_warnings(run_installer, tmp_path):
    """Test scenario presence warnings and their wording."""
    present = write_tree(tmp_path / 'src' / 'here', {'a.txt': 'a'})
    doc = document(
        scenarios={
            'here': {'path': str(present), 'check_presence': True},
            'gone': {'path': str(tmp_path / 'nowhere'), 'check_presence': True},
            'later': {'path': str(tmp_path / 'nowhere'), 'check_presence': True,
                      'install_at_startup': False},
            'unchecked': {'path': str(tmp_path / 'nowhere')},
        },
        install={'scenarios': {'here': {}, 'gone': {}, 'later': {}, 'unchecked': {}}},
    )

    report = await run_installer(doc)

    assert len(report.presence_warnings) == 2
    assert any("'gone' not found after install" in w for w in report.presence_warnings)
    assert any("'later'" in w and 'install_at_startup=false' in w for w in report.presence_warnings)


# ============================================================================
# REMOTE SOURCES
# ============================================================================

class Downloads:
    def __init__(self):
        self.files = {}
        self.failures = {}
        self.hits = {}

    async def handle(self, request):
        path = request.path
        self.hits[path] = self.hits.get(path, 0) + 1
        if self.failures.get(path):
            self.failures[path] -= 1
            return web.Response(status=503)
        if path not in self.files:
            return web.Response(status=404)
        return web.Response(body=self.files[path], headers={'ETag': f'"{len(self.files[path])}"'})


@pytest.fixture
async def downloads(serve):
    origin = Downloads()
    app = web.Application()
    app.router.add_get('/{tail:.*}', origin.handle)
    server = await serve(app)
    origin.url = lambda path: str(server.make_url(path))
    return origin


def package_tgz(name, files):
    entries = [(f'{name}/', None)] + [(f'{name}/{rel}', data) for rel, data in files.items()]
    return gzip.compress(tar_bytes(entries))


async def test_direct_url_retried_then_installed(run_installer, downloads, tmp_path):
    """Test a download that fails twice installs on the third attempt."""
    downloads.files['/core-1.0.tar.gz'] = package_tgz('core-1.0', {'engine.json': b'{"v": 1}'})
    downloads.failures['/core-1.0.tar.gz'] = 2
    doc = document(
        engines={'core': {'path': downloads.url('/core-1.0.tar.gz')}},
        install={'engines': {'core': {}}},
    )

    report = await run_installer(doc)

    outcome = report.outcome_for('engine', 'core')
    assert outcome.status == 'installed', outcome.error
    assert outcome.error is None
    assert downloads.hits['/core-1.0.tar.gz'] == 3
    assert read_tree(tmp_path / 'data' / 'engines' / 'core') == {'engine.json': '{"v": 1}'}


async def test_unchanged_remote_archive_skipped(run_installer, downloads):
    """Test an identical re-downloaded archive is skipped."""
    downloads.files['/core.tgz'] = package_tgz('core', {'engine.json': b'{}'})
    doc = document(engines={'core': {'path': downloads.url('/core.tgz')}}, install={'engines': {'core': {}}})

    await run_installer(doc)
    report = await run_installer(doc)

    assert report.outcome_for('engine', 'core').status == 'skipped'
    assert downloads.hits['/core.tgz'] == 2


async def test_manifest_with_relative_download(run_installer, downloads, tmp_path):
    """Test a manifest's relative download URL is resolved and installed."""
    downloads.files['/pkgs/mod/manifest.json'] = json.dumps({
        'id': 'mod',
        'url': 'https://example.invalid/mod/readme',
        'releases': [{'version': '2.0', 'download': 'mod-2.0.tar.gz'}],
    }).encode()
    downloads.files['/pkgs/mod/mod-2.0.tar.gz'] = package_tgz('mod-2.0', {'module.json': b'{"v": 2}'})
    doc = document(
        extensions={'mod': {'manifest': downloads.url('/pkgs/mod/manifest.json'), 'path': '/ignored'}},
        install={'extensions': {'mod': {}}},
    )

    report = await run_installer(doc)

    assert report.outcome_for('extension', 'mod').status == 'installed'
    assert read_tree(tmp_path / 'data' / 'extensions' / 'mod') == {'module.json': '{"v": 2}'}


async def test_manifest_without_download_url_fails(run_installer, downloads):
    """Test a manifest without a download URL fails the package."""
    downloads.files['/manifest.json'] = json.dumps({'id': 'mod', 'title': 'Mod'}).encode()
    doc = document(
        extensions={'mod': {'manifest': downloads.url('/manifest.json')}},
        install={'extensions': {'mod': {}}},
    )

    report = await run_installer(doc)

    outcome = report.outcome_for('extension', 'mod')
    assert outcome.status == 'failed'
    assert 'No download URL' in outcome.error


async def test_missing_remote_is_failed_without_retries(run_installer, downloads):
    """Test a 404 download fails without retrying."""
    doc = document(engines={'core': {'path': downloads.url('/absent.zip')}}, install={'engines': {'core': {}}})

    report = await run_installer(doc)

    assert report.outcome_for('engine', 'core').status == 'failed'
    assert '404' in report.outcome_for('engine', 'core').error
    assert downloads.hits['/absent.zip'] == 1


async def test_non_archive_artifact_left_in_cache(run_installer, downloads, tmp_path):
    """Test a non-archive download stays in the cache."""
    downloads.files['/data/table.json'] = b'{"rows": []}'
    doc = document(engines={'table': {'path': downloads.url('/data/table.json')}},
                   install={'engines': {'table': {}}})

    report = await run_installer(doc)

    outcome = report.outcome_for('engine', 'table')
    assert outcome.status == 'installed'
    assert outcome.destination is None
    assert 'non-archive' in outcome.note
    assert not (tmp_path / 'data' / 'engines' / 'table').exists()
