"""Feed document parsing."""

from feedagg.parser.syndication import SyndicationParser, parse_date

__all__ = ["SyndicationParser", "parse_date"]
