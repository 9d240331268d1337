"""
Parsers and converters used by the migration pipeline.

Currently this subpackage exposes ``convert_html_to_blocks`` from
:mod:`src.parsers.builder_local` and ``transform_content`` from
:mod:`src.parsers.content_transformer`.
"""

from .builder_local import convert_html_to_blocks
from .content_transformer import transform_content

__all__ = ["convert_html_to_blocks", "transform_content"]
