"""
Network Cache Module
On-disk fixture cache of fetched network resources, keyed by host and URL hash.

Cached files hold an HTTP status line, ``name:value`` header lines, a blank
line and the body, so that reruns can be served offline exactly as fetched.
"""

import gzip
import hashlib
import logging
import urllib.request
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple
from urllib.parse import urlsplit

from core.errors import CacheError
from utils.file_utils import append_line, ensure_directory

logger = logging.getLogger(__name__)

METADATA_FILENAME = 'metadata.txt'

USER_AGENT = 'Mozilla/5.0 (compatible; css-site-oracle)'

# Headers that no longer describe the body once it has been decompressed
_ENCODING_HEADERS = {'content-encoding', 'content-length'}


def encode_string(text: str) -> str:
    """md5 hex digest of a string, used as cache key."""
    return hashlib.md5(text.encode('utf-8')).hexdigest()


class CacheConnection:
    """Connection-like reader of a cached file."""

    def __init__(self, cached_file: Path):
        self.cached_file = cached_file
        self.status = 200
        self.reason = 'OK'
        self.headers: Dict[str, str] = {}
        self.content_length = -1
        self._body: Optional[bytes] = None

    def connect(self) -> None:
        try:
            data = self.cached_file.read_bytes()
        except OSError as e:
            raise CacheError(f"Unable to read cached file {self.cached_file}: {e}") from e
        head, separator, body = data.partition(b'\n\n')
        if not separator:
            raise CacheError(f"Corrupt cached file {self.cached_file}: no header terminator")
        lines = head.decode('utf-8', errors='replace').split('\n') if head else []
        if lines and lines[0].startswith('HTTP/'):
            parts = lines.pop(0).split(' ', 2)
            if len(parts) > 1 and parts[1].isdigit():
                self.status = int(parts[1])
            self.reason = parts[2] if len(parts) > 2 else ''
        for line in lines:
            name, _, value = line.partition(':')
            self.headers[name.strip().lower()] = value
        self._body = body
        self.content_length = len(body)

    def get_header_field(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def read(self) -> bytes:
        if self._body is None:
            self.connect()
        return self._body


class NetCache:
    """Fixture cache rooted at ``cachedir``."""

    def __init__(self, cachedir: Path):
        if cachedir is None:
            raise ValueError("Cache directory cannot be None")
        self.cachedir = Path(cachedir)

    def is_cached(self, hostname: str, encoded_url: str) -> bool:
        return (self.cachedir / hostname / encoded_url).is_file()

    def get_host_directory(self, url: str) -> Path:
        return self.cachedir / (urlsplit(url).hostname or 'localhost')

    def cache_file(self, url: str, encoded_url: str, status: int, reason: str,
                   headers: Iterable[Tuple[str, str]], body: bytes) -> Path:
        """Store a fetched resource and record it in the host metadata.

        Raises:
            CacheError: when the file cannot be written. The partial file is removed.
        """
        host_dir = self.get_host_directory(url)
        cached_file = host_dir / encoded_url
        headers = list(headers)
        gzipped = any(name.lower() == 'content-encoding' and 'gzip' in value.lower()
                      for name, value in headers)
        try:
            ensure_directory(host_dir)
            if gzipped:
                body = gzip.decompress(body)
            with open(cached_file, 'wb') as out:
                out.write(f"HTTP/1.1 {status} {reason}\n".encode('utf-8'))
                for name, value in headers:
                    if gzipped and name.lower() in _ENCODING_HEADERS:
                        continue
                    out.write(f"{name}:{value}\n".encode('utf-8'))
                out.write(b'\n')
                out.write(body)
        except (OSError, EOFError) as e:
            if cached_file.is_file():
                cached_file.unlink()
            raise CacheError(f"Unable to cache {url}: {e}") from e

        parts = urlsplit(url)
        location = parts.path or '/'
        if parts.query:
            location += '?' + parts.query
        try:
            append_line(host_dir / METADATA_FILENAME, f"{encoded_url} {len(body):10d} {location}")
        except OSError as e:
            logger.warning(f"Unable to update cache metadata for {url}: {e}")
        logger.debug(f"Cached {url} as {cached_file}")
        return cached_file

    def open_connection(self, hostname: str, encoded_url: str) -> CacheConnection:
        return CacheConnection(self.cachedir / hostname / encoded_url)


class CachingFetcher:
    """Fetches URLs, through the fixture cache when one is configured."""

    def __init__(self, cache: Optional[NetCache] = None, timeout: float = 30.0):
        self.cache = cache
        self.timeout = timeout

    def __call__(self, url: str) -> bytes:
        return self.fetch(url)

    def _open(self, url: str):
        request = urllib.request.Request(url, headers={'User-Agent': USER_AGENT, 'Accept-Encoding': 'gzip'})
        return urllib.request.urlopen(request, timeout=self.timeout)

    def _fetch_direct(self, url: str) -> bytes:
        with self._open(url) as response:
            body = response.read()
            if 'gzip' in (response.headers.get('Content-Encoding') or '').lower():
                body = gzip.decompress(body)
            return body

    def fetch(self, url: str) -> bytes:
        """Return the body of a URL.

        Local ``file:`` URLs are read directly. Cache failures are logged and
        degraded to a direct fetch.
        """
        parts = urlsplit(url)
        if self.cache is None or parts.scheme not in ('http', 'https'):
            return self._fetch_direct(url)

        hostname = parts.hostname or 'localhost'
        key = encode_string(url)
        try:
            if not self.cache.is_cached(hostname, key):
                with self._open(url) as response:
                    self.cache.cache_file(url, key, response.status, response.reason,
                                          response.getheaders(), response.read())
            connection = self.cache.open_connection(hostname, key)
            connection.connect()
            logger.debug(f"Serving {url} from cache ({connection.content_length} bytes)")
            return connection.read()
        except CacheError as e:
            logger.warning(f"Cache failure for {url}, fetching directly: {e}")
            return self._fetch_direct(url)
