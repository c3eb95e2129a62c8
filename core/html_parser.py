"""
HTML Parser Module
Parses HTML content into a BeautifulSoup tree and collects its style sheets.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union
from pathlib import Path
from urllib.parse import urljoin
import logging

import tinycss2
from bs4 import BeautifulSoup, Tag

from core.stylesheet import SheetIssue, StyleSheet

logger = logging.getLogger(__name__)

# Media types that never apply to a screen rendering
NON_SCREEN_MEDIA = {'print', 'speech', 'aural', 'braille', 'embossed', 'tty', 'tv', 'projection'}

MEDIA_QUERY_KEYWORDS = {'and', 'or', 'not', 'only'}


@dataclass
class SheetSource:
    """Text of a style sheet and the node that owns it."""
    owner: Tag
    text: str
    href: Optional[str] = None
    media: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ParsedDocument:
    soup: BeautifulSoup
    base_url: Optional[str]
    sheet_sources: List[SheetSource] = field(default_factory=list)

    def build_style_sheets(self) -> List[StyleSheet]:
        """Parse every collected sheet source into a StyleSheet."""
        sheets = []
        for source in self.sheet_sources:
            sheet = StyleSheet.parse(source.text, href=source.href, owner_node=source.owner, media=source.media)
            if source.error:
                sheet.errors.insert(0, SheetIssue(source.error))
            sheets.append(sheet)
        return sheets


def media_applies(media: Optional[str]) -> bool:
    """True unless every query of the media list excludes screens."""
    if not media or not media.strip():
        return True
    for query in media.lower().split(','):
        words = query.split()
        if not words:
            continue
        if words[0] == 'not' or words[0] in NON_SCREEN_MEDIA:
            continue
        if words[0] == 'only' and len(words) > 1 and words[1] in NON_SCREEN_MEDIA:
            continue
        return True
    return False


def _is_keyword(token, *names) -> bool:
    return token.type == 'ident' and token.lower_value in names


def _valid_feature(token) -> bool:
    """A parenthesized media feature or nested condition."""
    if token.type != '() block':
        return False
    content = [t for t in token.content if t.type not in ('whitespace', 'comment')]
    if not content:
        return False
    if content[0].type == '() block' or _is_keyword(content[0], 'not'):
        return _valid_condition(content)
    if content[-1].type == 'literal' and content[-1].value == ':':
        return False
    return content[0].type in ('ident', 'number', 'dimension', 'percentage', 'function')


def _valid_condition(tokens) -> bool:
    if tokens and _is_keyword(tokens[0], 'not'):
        tokens = tokens[1:]
    expect_feature = True
    for token in tokens:
        if expect_feature:
            if not _valid_feature(token):
                return False
        elif not _is_keyword(token, 'and', 'or'):
            return False
        expect_feature = not expect_feature
    return bool(tokens) and not expect_feature


def _valid_media_query(tokens) -> bool:
    tokens = [t for t in tokens if t.type not in ('whitespace', 'comment')]
    if not tokens:
        return False
    start = 1 if _is_keyword(tokens[0], 'not', 'only') and len(tokens) > 1 and tokens[1].type == 'ident' else 0
    media_type = tokens[start]
    if media_type.type != 'ident' or media_type.lower_value in MEDIA_QUERY_KEYWORDS:
        return start == 0 and _valid_condition(tokens)
    rest = tokens[start + 1:]
    if not rest:
        return True
    return _is_keyword(rest[0], 'and') and _valid_condition(rest[1:])


def media_query_errors(media: Optional[str]) -> List[str]:
    """Syntax errors of a media query list, one message per invalid query."""
    if not media or not media.strip():
        return []
    errors = []
    query = []
    for token in tinycss2.parse_component_value_list(media, skip_comments=True) + [None]:
        if token is not None and not (token.type == 'literal' and token.value == ','):
            query.append(token)
            continue
        if not _valid_media_query(query):
            text = tinycss2.serialize(query).strip()
            errors.append(f"Invalid media query '{text}'" if text else "Empty media query")
        query = []
    return errors


def _is_stylesheet_link(tag: Tag) -> bool:
    rel = tag.get('rel') or []
    if isinstance(rel, str):
        rel = rel.split()
    rel = [r.lower() for r in rel]
    return 'stylesheet' in rel and 'alternate' not in rel and bool(tag.get('href'))


class HTMLParser:
    """Parser for HTML documents and the sheets they reference."""

    def __init__(self, fetcher: Optional[Callable[[str], bytes]] = None, features: str = 'html.parser'):
        """Initialize the HTML parser.

        Args:
            fetcher: callable returning the bytes of a URL, used for linked sheets.
            features: BeautifulSoup tree builder.
        """
        self.fetcher = fetcher
        self.features = features

    def parse_file(self, file_path: Union[str, Path]) -> ParsedDocument:
        """Parse an HTML file, using its location as base URL."""
        try:
            logger.info(f"Starting to parse file: {file_path}")
            path = Path(file_path)

            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
                logger.debug(f"Successfully read file, content length: {len(content)}")

            return self.parse(content, path.resolve().as_uri())

        except Exception as e:
            logger.error(f"Error parsing file {file_path}: {str(e)}", exc_info=True)
            raise

    def parse(self, html_content: Union[str, bytes], base_url: Optional[str] = None) -> ParsedDocument:
        """Parse HTML content and collect its sheets in document order."""
        try:
            logger.debug(f"Input HTML content length: {len(html_content)}")
            soup = BeautifulSoup(html_content, self.features)
            logger.debug(f"BeautifulSoup parsing complete ({self.features})")

            base_tag = soup.find('base', href=True)
            if base_tag is not None:
                base_url = urljoin(base_url or '', base_tag['href'])
                logger.debug(f"Document base URL set by <base>: {base_url}")

            document = ParsedDocument(soup, base_url)
            for tag in soup.find_all(['style', 'link']):
                if tag.name == 'style':
                    document.sheet_sources.append(
                        SheetSource(tag, tag.get_text(), media=tag.get('media')))
                elif _is_stylesheet_link(tag):
                    document.sheet_sources.append(self._load_link(tag, base_url))
            logger.info(f"Parsed document {base_url or '(inline)'} "
                        f"with {len(document.sheet_sources)} style sheets")
            return document

        except Exception as e:
            logger.error(f"Error parsing HTML: {str(e)}", exc_info=True)
            raise

    def _load_link(self, tag: Tag, base_url: Optional[str]) -> SheetSource:
        href = urljoin(base_url, tag['href']) if base_url else tag['href']
        source = SheetSource(tag, '', href=href, media=tag.get('media'))
        if self.fetcher is None:
            source.error = f"No fetcher available to load {href}"
            return source
        try:
            source.text = self.fetcher(href).decode('utf-8', errors='replace')
            logger.debug(f"Loaded linked sheet {href}: {len(source.text)} characters")
        except (OSError, ValueError) as e:
            logger.warning(f"Unable to load style sheet {href}: {e}")
            source.error = f"Unable to load {href}: {e}"
        return source
