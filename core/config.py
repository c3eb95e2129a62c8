"""
Configuration Module
Loads the checker configuration and the list of sample sites.
"""

import configparser
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple, Union

from core.errors import ConfigError

logger = logging.getLogger(__name__)

SECTION = 'samplesites'

REPORTER_TYPES = ('log', 'tree')


@dataclass(frozen=True)
class CheckerConfig:
    cachedir: Optional[Path] = None
    reporter: str = 'log'
    fail_on_warning: bool = False
    compare_attributes: bool = False
    max_nodes: int = 5000
    report_dir: Optional[Path] = None
    log_level: str = 'INFO'
    timeout: float = 30.0
    # bs4 tree builders used for additional re-parsed backends, e.g. "lxml"
    right_parsers: Tuple[str, ...] = field(default_factory=tuple)

    def with_overrides(self, **overrides) -> 'CheckerConfig':
        """Return a copy with the non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if 'reporter' in values and values['reporter'] not in REPORTER_TYPES:
            raise ConfigError(f"Unknown reporter type: {values['reporter']}")
        return replace(self, **values)

    @property
    def cache_enabled(self) -> bool:
        return self.cachedir is not None and self.cachedir.is_dir()


def _get_bool(section, key: str, default: bool) -> bool:
    try:
        return section.getboolean(key, fallback=default)
    except ValueError as e:
        raise ConfigError(f"Invalid boolean for '{key}': {section.get(key)}") from e


def _get_number(section, key: str, default, kind):
    raw = section.get(key)
    if raw is None:
        return default
    try:
        return kind(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for '{key}': {raw}") from e


def load_config(path: Union[str, Path, None]) -> CheckerConfig:
    """Load the configuration file, falling back to defaults when it does not exist."""
    if path is None or not Path(path).is_file():
        logger.debug(f"No configuration file at {path}, using defaults")
        return CheckerConfig()

    parser = configparser.ConfigParser()
    try:
        parser.read(path, encoding='utf-8')
    except configparser.Error as e:
        raise ConfigError(f"Unable to parse configuration {path}: {e}") from e
    if not parser.has_section(SECTION):
        logger.warning(f"Configuration {path} has no [{SECTION}] section, using defaults")
        return CheckerConfig()
    section = parser[SECTION]

    reporter = section.get('reporter', 'log').strip().lower()
    if reporter not in REPORTER_TYPES:
        raise ConfigError(f"Unknown reporter type: {reporter}")

    cachedir = section.get('cachedir')
    report_dir = section.get('report-dir')
    parsers = section.get('right-parsers', '')

    config = CheckerConfig(
        cachedir=Path(cachedir).expanduser() if cachedir else None,
        reporter=reporter,
        fail_on_warning=_get_bool(section, 'fail-on-warning', False),
        compare_attributes=_get_bool(section, 'compare-attributes', False),
        max_nodes=_get_number(section, 'max-nodes', 5000, int),
        report_dir=Path(report_dir).expanduser() if report_dir else None,
        log_level=section.get('log-level', 'INFO').upper(),
        timeout=_get_number(section, 'timeout', 30.0, float),
        right_parsers=tuple(p.strip() for p in parsers.split(',') if p.strip()),
    )
    if config.cachedir is not None and not config.cachedir.is_dir():
        logger.warning(f"Cache directory {config.cachedir} does not exist, cache disabled")
    logger.info(f"Loaded configuration from {path}")
    return config


def load_sites(path: Union[str, Path]) -> List[str]:
    """Read the site list: one URL per line, '#' comments and blank lines skipped."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ConfigError(f"Unable to read site list {path}: {e}") from e
    sites = []
    for line in lines:
        site = line.strip()
        if site and not site.startswith('#'):
            sites.append(site)
    return sites
