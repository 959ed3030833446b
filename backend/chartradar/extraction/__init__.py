"""
Extraction: blocklist, row strategies, page parsers and entity resolution
"""
from .parsers import (
    ChartPageParser,
    ParseResult,
    beatport_chart_parser,
    toptracker_chart_parser,
    parse_chart_tsv,
    parse_genres,
    parse_chart_links,
)
from .classify import classify_chart_family
from .resolver import EntityResolver
