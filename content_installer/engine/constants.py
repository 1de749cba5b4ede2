# Path: content_installer/engine/constants.py
"""
Installer Engine Constants

Centralized constants for HTTP fetching and the cache layout.
"""

# ============================================================================
# HTTP HEADERS
# ============================================================================
HEADER_USER_AGENT = 'User-Agent'
HEADER_ACCEPT = 'Accept'
HEADER_ACCEPT_ENCODING = 'Accept-Encoding'
HEADER_IF_NONE_MATCH = 'If-None-Match'
HEADER_IF_MODIFIED_SINCE = 'If-Modified-Since'
HEADER_ETAG = 'ETag'
HEADER_LAST_MODIFIED = 'Last-Modified'
HEADER_CONTENT_LENGTH = 'Content-Length'

DEFAULT_USER_AGENT = 'content-installer/1.0'
DEFAULT_ACCEPT_HEADER = '*/*'
# Archives must arrive byte-identical; no transfer compression
DEFAULT_ACCEPT_ENCODING = 'identity'

# ============================================================================
# CONNECTION POOL
# ============================================================================
MAX_CONCURRENT_CONNECTIONS = 4
FORCE_CLOSE_CONNECTIONS = False

# ============================================================================
# CACHE LAYOUT
# ============================================================================
CACHE_BODY_SUFFIX = '.bin'
CACHE_PART_SUFFIX = '.part'

# Metadata record keys
META_URL = 'url'
META_ETAG = 'etag'
META_LAST_MODIFIED = 'last_modified'
META_LOCAL_PATH = 'local_path'
META_SIZE_BYTES = 'size_bytes'
META_SHA256 = 'sha256'
META_FETCHED_AT = 'fetched_at'
META_VALIDATED_AT = 'validated_at'

# ============================================================================
# CHANGE DETECTION KEYS
# ============================================================================
FILE_KEY_PREFIX = 'file://'
DIR_KEY_PREFIX = 'dir://'
DEST_KEY_PREFIX = 'dest://'

SIGNATURE_KIND_FILE = 'file'
SIGNATURE_KIND_DIRECTORY = 'directory'

# ============================================================================
# COPY / EXTRACT TOOLS
# ============================================================================
COPY_METHOD_RSYNC = 'rsync'
COPY_METHOD_CP = 'cp'
COPY_METHOD_PYTHON = 'python'
