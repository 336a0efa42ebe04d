from .frontmatter import split_frontmatter
from .hierarchy import IndentStack, IndentStackEntry
from .metadata import ExtractedMetadata, MetadataExtractor
from .task_parser import ConfigurableTaskParser, MarkdownTaskParser, extract_multiline_comment

__all__ = [
    "ConfigurableTaskParser",
    "MarkdownTaskParser",
    "MetadataExtractor",
    "ExtractedMetadata",
    "IndentStack",
    "IndentStackEntry",
    "extract_multiline_comment",
    "split_frontmatter",
]
