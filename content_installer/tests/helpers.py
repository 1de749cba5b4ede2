# Path: content_installer/tests/helpers.py
"""
Test helpers: hand-built ustar archives and small file-tree utilities.
"""

import gzip
import zipfile
from pathlib import Path


def _octal(value: int, width: int) -> bytes:
    return f"{value:0{width - 1}o}\0".encode('ascii')


def tar_header(name: str, size: int = 0, typeflag: bytes = b'0', prefix: str = '') -> bytes:
    header = bytearray(512)
    encoded = name.encode('utf-8')
    header[0:len(encoded)] = encoded
    header[100:108] = _octal(0o755 if typeflag == b'5' else 0o644, 8)
    header[108:116] = _octal(0, 8)
    header[116:124] = _octal(0, 8)
    header[124:136] = _octal(size, 12)
    header[136:148] = _octal(0, 12)
    header[148:156] = b' ' * 8
    header[156:157] = typeflag
    header[257:263] = b'ustar\0'
    header[263:265] = b'00'
    if prefix:
        encoded_prefix = prefix.encode('utf-8')
        header[345:345 + len(encoded_prefix)] = encoded_prefix
    checksum = sum(header)
    header[148:156] = f"{checksum:06o}\0 ".encode('ascii')
    return bytes(header)


def tar_bytes(entries) -> bytes:
    """
    Build an uncompressed tar stream.

    entries: list of (name, content) where content is bytes for a file,
    None for a directory, or (typeflag, bytes) for any other entry type.
    """
    blocks = []
    for name, content in entries:
        if content is None:
            blocks.append(tar_header(name, 0, b'5'))
            continue
        typeflag = b'0'
        if isinstance(content, tuple):
            typeflag, content = content
        blocks.append(tar_header(name, len(content), typeflag))
        padding = (512 - len(content) % 512) % 512
        blocks.append(content + b'\0' * padding)
    blocks.append(b'\0' * 1024)
    return b''.join(blocks)


def write_tgz(path: Path, entries) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(gzip.compress(tar_bytes(entries)))
    return path


def write_zip(path: Path, entries) -> Path:
    """Zip archive from (name, content) pairs; content None makes a directory entry."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, 'w') as archive:
        for name, content in entries:
            if content is None:
                archive.writestr(name.rstrip('/') + '/', b'')
            else:
                archive.writestr(name, content)
    return path


def write_tree(root: Path, files: dict) -> Path:
    """Create files under root from {relative path: text}."""
    for relative, text in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text)
    return root


def read_tree(root: Path) -> dict:
    """{relative posix path: text} for every file under root."""
    return {
        path.relative_to(root).as_posix(): path.read_text()
        for path in sorted(root.rglob('*')) if path.is_file()
    }
