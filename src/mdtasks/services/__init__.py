from .chinese_dates import find_chinese_date_expressions, parse_chinese_date
from .time_parsing import TimeParsingService, parse_time_component

__all__ = [
    "TimeParsingService",
    "parse_time_component",
    "find_chinese_date_expressions",
    "parse_chinese_date",
]
