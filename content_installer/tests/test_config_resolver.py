# Path: content_installer/tests/test_config_resolver.py
"""Configuration document and version resolution."""

import pytest

from content_installer.core.exceptions import ConfigurationError
from content_installer.engine.config_resolver import ConfigResolver
from content_installer.constants import (
    EXIT_CONFIG_UNREADABLE,
    EXIT_NO_VERSION_MAP,
    EXIT_VERSION_MISSING,
    EXIT_VERSION_UNSUPPORTED,
)

DOCUMENT = {
    'engines': {'core': {'manifest': 'https://example.com/core.json', 'channel': 'stable'}},
    'extensions': {},
    'scenarios': {'sandbox': {'path': '/srv/sandbox'}},
    'versions': {
        '12': {'supported': False, 'install': {}},
        '13': {
            'supported': True,
            'install': {
                'engines': {'core': {'channel': 'beta'}},
                'scenarios': {'sandbox': {}},
            },
        },
    },
}


@pytest.mark.parametrize('version, expected', [
    ('latest', '13'),
    ('stable', '13'),
    ('LATEST', '13'),
    ('13.307', '13'),
    ('13', '13'),
    ('12.1.5', '12'),
    ('v13', '13'),
    ('13.x', '13'),
    ('', '13'),
    (None, '13'),
])
def test_major_version_resolution(settings, version, expected):
    """Test requested versions map to major versions."""
    assert ConfigResolver(settings()).resolve_major_version(version) == expected


def test_fallback_major_is_configurable(settings):
    """Test the fallback major version comes from settings."""
    resolver = ConfigResolver(settings(fallback_major_version='11'))

    assert resolver.resolve_major_version('latest') == '11'


def test_resolves_active_version(settings):
    """Test resolution of the active version and package maps."""
    resolved = ConfigResolver(settings()).resolve(DOCUMENT, version='13.307')

    assert resolved.major_version == '13'
    assert resolved.requested_version == '13.307'
    assert list(resolved.install_map('engine')) == ['core']
    assert resolved.install_map('extension') is None
    assert resolved.destination_root('scenario') == resolved.data_dir / 'scenarios'


def test_override_wins_on_merge(settings):
    """Test per-version overrides win over top-level entries."""
    resolved = ConfigResolver(settings()).resolve(DOCUMENT, version='13')

    merged = resolved.merged_entry('engine', 'core', {'channel': 'beta'})

    assert merged == {'manifest': 'https://example.com/core.json', 'channel': 'beta'}
    assert DOCUMENT['engines']['core']['channel'] == 'stable'


def test_unknown_top_level_id_uses_override_only(settings, caplog):
    """Test an override-only id is used with a warning."""
    resolved = ConfigResolver(settings()).resolve(DOCUMENT, version='13')

    with caplog.at_level('WARNING'):
        merged = resolved.merged_entry('extension', 'extra', {'path': '/srv/extra'})

    assert merged == {'path': '/srv/extra'}
    assert 'not defined at top level' in caplog.text


def test_missing_document(settings, tmp_path):
    """Test a missing document raises with exit code 2."""
    with pytest.raises(ConfigurationError) as excinfo:
        ConfigResolver(settings()).resolve()

    assert excinfo.value.exit_code == EXIT_CONFIG_UNREADABLE


def test_unparsable_document(settings, write_document, tmp_path):
    """Test an unparsable document raises with exit code 2."""
    (tmp_path / 'config.json').write_text('{broken')

    with pytest.raises(ConfigurationError) as excinfo:
        ConfigResolver(settings()).resolve()

    assert excinfo.value.exit_code == EXIT_CONFIG_UNREADABLE


def test_document_read_from_config_path(settings, write_document):
    """Test the document is loaded from config_path."""
    write_document(DOCUMENT)

    resolved = ConfigResolver(settings(version='13.1')).resolve()

    assert resolved.major_version == '13'


def test_no_version_map(settings):
    """Test a missing 'versions' map raises with exit code 3."""
    with pytest.raises(ConfigurationError) as excinfo:
        ConfigResolver(settings()).resolve({'engines': {}}, version='13')

    assert excinfo.value.exit_code == EXIT_NO_VERSION_MAP


def test_version_absent(settings):
    """Test an absent major version raises with exit code 4."""
    with pytest.raises(ConfigurationError) as excinfo:
        ConfigResolver(settings()).resolve(DOCUMENT, version='14.0')

    assert excinfo.value.exit_code == EXIT_VERSION_MISSING


def test_version_unsupported(settings):
    """Test an unsupported major version raises with exit code 5."""
    with pytest.raises(ConfigurationError) as excinfo:
        ConfigResolver(settings()).resolve(DOCUMENT, version='12')

    assert excinfo.value.exit_code == EXIT_VERSION_UNSUPPORTED
