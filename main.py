#!/usr/bin/env python3
"""
CSS Site Oracle
Main entry point: compares the styles computed by several CSS/DOM backends
for a list of sites.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from agents.soup_agent import SoupAgent
from agents.wrapper_agent import WrapperAgent
from comparator.report_builder import ReportBuilder
from comparator.site_reporter import LogSiteErrorReporter, TreeSiteErrorReporter
from core.config import REPORTER_TYPES, CheckerConfig, load_config, load_sites
from core.errors import ConfigError
from core.site_checker import SiteChecker
from utils.net_cache import CachingFetcher, NetCache

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = 'samplesites.ini'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare the computed styles of web sites across CSS/DOM backends.",
    )
    parser.add_argument('urls', nargs='*', help="URLs of the sites to check")
    parser.add_argument('--config', type=Path, default=Path(DEFAULT_CONFIG),
                        help=f"Configuration file (default: {DEFAULT_CONFIG})")
    parser.add_argument('--sites', type=Path, help="File with one site URL per line")
    parser.add_argument('--reporter', choices=REPORTER_TYPES, help="Where findings are written")
    parser.add_argument('--cachedir', type=Path, help="Fixture cache directory")
    parser.add_argument('--compare-attributes', action='store_true', default=None,
                        help="Also compare element attributes")
    return parser


def create_reporter(config: CheckerConfig):
    if config.reporter == 'tree':
        if config.cachedir is None:
            raise ConfigError("The tree reporter needs a cache directory")
        TreeSiteErrorReporter.rotate_global_file(config.cachedir)
        return TreeSiteErrorReporter(NetCache(config.cachedir))
    return LogSiteErrorReporter()


def create_agents(config: CheckerConfig):
    """Reference backend plus the backends compared against it."""
    cache = NetCache(config.cachedir) if config.cache_enabled else None
    fetcher = CachingFetcher(cache, timeout=config.timeout)
    left_agent = SoupAgent(fetcher)
    right_agents = [WrapperAgent(left_agent)]
    for features in config.right_parsers:
        right_agents.append(SoupAgent(fetcher, features=features))
    return left_agent, right_agents


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config).with_overrides(
            reporter=args.reporter,
            cachedir=args.cachedir,
            compare_attributes=args.compare_attributes,
        )
        logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO),
                            format='%(asctime)s %(levelname)s %(name)s: %(message)s')

        urls = list(args.urls)
        if args.sites is not None:
            urls.extend(load_sites(args.sites))
        if not urls:
            logger.error("No sites to check")
            return 1

        reporter = create_reporter(config)
    except ConfigError as e:
        logging.basicConfig()
        logger.error(f"Configuration error: {e}")
        return 1

    left_agent, right_agents = create_agents(config)
    checker = SiteChecker(config, reporter, left_agent, right_agents)
    results = checker.check_sites(urls)

    if config.report_dir is not None:
        builder = ReportBuilder()
        builder.collect_metrics(results)
        builder.generate_html_report(config.report_dir / 'report.html')
        builder.generate_json_report(config.report_dir / 'report.json')

    failed = [result for result in results if not result.passed]
    logger.info(f"Checked {len(results)} sites, {len(failed)} failed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
