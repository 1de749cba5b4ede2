# Path: content_installer/engine/extraction/constants.py
"""
Extraction Module Constants

Centralized constants for archive format detection, external unpack
tools and the built-in tar decoder.
"""

# ============================================================================
# ARCHIVE FORMATS
# ============================================================================
FORMAT_ZIP = 'zip'
FORMAT_TAR = 'tar'
FORMAT_TAR_GZ = 'tar.gz'
FORMAT_TAR_BZ2 = 'tar.bz2'
FORMAT_TAR_XZ = 'tar.xz'

# Compound suffixes first so '.tar.gz' wins over '.gz'
ARCHIVE_SUFFIXES = (
    ('.tar.gz', FORMAT_TAR_GZ),
    ('.tgz', FORMAT_TAR_GZ),
    ('.tar.bz2', FORMAT_TAR_BZ2),
    ('.tbz2', FORMAT_TAR_BZ2),
    ('.tar.xz', FORMAT_TAR_XZ),
    ('.txz', FORMAT_TAR_XZ),
    ('.zip', FORMAT_ZIP),
    ('.tar', FORMAT_TAR),
)

# Formats the built-in decoder can read
BUILTIN_FORMATS = frozenset({FORMAT_TAR, FORMAT_TAR_GZ})

# ============================================================================
# EXTERNAL TOOLS
# ============================================================================
TOOL_UNZIP = 'unzip'
TOOL_TAR = 'tar'

METHOD_EXTERNAL = 'external'
METHOD_BUILTIN = 'builtin'

# ============================================================================
# TAR LAYOUT
# ============================================================================
TAR_BLOCK_SIZE = 512
TAR_END_ZERO_BLOCKS = 2

TAR_NAME_FIELD = slice(0, 100)
TAR_SIZE_FIELD = slice(124, 136)
TAR_CHECKSUM_FIELD = slice(148, 156)
TAR_TYPE_FIELD = slice(156, 157)
TAR_MAGIC_FIELD = slice(257, 263)
TAR_PREFIX_FIELD = slice(345, 500)

TAR_MAGIC_USTAR = b'ustar'

TAR_TYPE_REGULAR = (b'0', b'\0')
TAR_TYPE_DIRECTORY = b'5'


__all__ = [
    'FORMAT_ZIP',
    'FORMAT_TAR',
    'FORMAT_TAR_GZ',
    'FORMAT_TAR_BZ2',
    'FORMAT_TAR_XZ',
    'ARCHIVE_SUFFIXES',
    'BUILTIN_FORMATS',
    'TOOL_UNZIP',
    'TOOL_TAR',
    'METHOD_EXTERNAL',
    'METHOD_BUILTIN',
    'TAR_BLOCK_SIZE',
    'TAR_END_ZERO_BLOCKS',
    'TAR_NAME_FIELD',
    'TAR_SIZE_FIELD',
    'TAR_CHECKSUM_FIELD',
    'TAR_TYPE_FIELD',
    'TAR_MAGIC_FIELD',
    'TAR_PREFIX_FIELD',
    'TAR_MAGIC_USTAR',
    'TAR_TYPE_REGULAR',
    'TAR_TYPE_DIRECTORY',
]
