"""
PageFormats - registry of the page codecs and file level helpers.

    registry = default_registry()
    codec = registry.find_by_extension("page.t42")
    result = codec.load(data)

load_file() and save_file() do the lookup and file access in one go and
surface codec warnings through the warnings module.
"""

import logging
import os
import warnings
from functools import lru_cache
from typing import Iterable, Iterator, List, Optional

from teletext_utils.errors import TeletextFormatWarning, UnknownFormatError
from teletext_utils.page_set import PageSet
from teletext_utils.PageFormats.formats.ep1_format import EP1Format
from teletext_utils.PageFormats.formats.htt_format import HTTFormat
from teletext_utils.PageFormats.formats.t42_format import T42Format
from teletext_utils.PageFormats.formats.tti_format import M29Format, TTIFormat
from teletext_utils.PageFormats.PageFormat import LoadResult, PageFormat, SaveResult

logger = logging.getLogger(__name__)


def _suffix(path_or_suffix: str) -> str:
    suffix = os.path.splitext(path_or_suffix)[1] or path_or_suffix
    return suffix.lstrip(".").lower()


class FormatRegistry:
    """Codecs by format id, looked up in registration order by extension."""

    def __init__(self, formats: Optional[Iterable[PageFormat]] = None):
        self._formats: List[PageFormat] = []
        for page_format in formats or ():
            self.register(page_format)

    def register(self, page_format: PageFormat) -> None:
        if page_format.format_id in self:
            raise ValueError(f"Format '{page_format.format_id}' is already registered")
        self._formats.append(page_format)

    def __contains__(self, format_id: object) -> bool:
        return any(f.format_id == format_id for f in self._formats)

    def __iter__(self) -> Iterator[PageFormat]:
        return iter(self._formats)

    def __len__(self) -> int:
        return len(self._formats)

    def get(self, format_id: str) -> PageFormat:
        for page_format in self._formats:
            if page_format.format_id == format_id.lower():
                return page_format
        raise UnknownFormatError(f"Unknown format '{format_id}'")

    def find_by_extension(self, path_or_suffix: str, for_loading: bool = False) -> PageFormat:
        """
        Find the first codec that handles a file extension.

        Args:
            path_or_suffix: A file path, or an extension with or without the dot
            for_loading: Skip codecs that can only save
        """
        suffix = _suffix(path_or_suffix)
        for page_format in self._formats:
            if for_loading and not page_format.can_load:
                continue
            if suffix in page_format.extensions():
                return page_format
        raise UnknownFormatError(f"No format handles '.{suffix}' files")

    def loadable_formats(self) -> List[PageFormat]:
        return [f for f in self._formats if f.can_load]

    def file_dialog_filters(self) -> str:
        """Filter string listing all loadable formats, then each one."""
        loadable = self.loadable_formats()
        extensions = " ".join(f"*.{e}" for f in loadable for e in f.extensions())
        return ";;".join([f"All Supported Files ({extensions})"] + [f.file_dialog_filter() for f in loadable])


@lru_cache(maxsize=None)
def default_registry() -> FormatRegistry:
    """The registry of every built-in codec, built on first use."""
    return FormatRegistry([TTIFormat(), T42Format(), EP1Format(), HTTFormat(), M29Format()])


def _pick_format(path: str, format_id: Optional[str], registry: Optional[FormatRegistry], loading: bool) -> PageFormat:
    registry = registry or default_registry()
    if format_id:
        return registry.get(format_id)
    return registry.find_by_extension(path, for_loading=loading)


def load_file(
    path: str, format_id: Optional[str] = None, registry: Optional[FormatRegistry] = None
) -> LoadResult:
    """
    Load a page file, choosing the codec by format id or file extension.

    Codec warnings are returned on the result and also emitted once as a
    TeletextFormatWarning.

    Raises:
        UnknownFormatError: No codec for the format id or extension
        TeletextLoadError: The file holds no usable page
    """
    page_format = _pick_format(path, format_id, registry, loading=True)
    logger.debug(f"Loading {path} as {page_format.description()}")

    with open(path, "rb") as f:
        data = f.read()
    result = page_format.load(data)

    if result.warnings:
        issues_text = "; ".join(result.warnings)
        warnings.warn(
            f"Issues loading {os.path.basename(path)}: {issues_text}",
            TeletextFormatWarning,
            stacklevel=2,
        )
    return result


def save_file(
    path: str,
    pages: PageSet,
    format_id: Optional[str] = None,
    subpage_index: Optional[int] = None,
    registry: Optional[FormatRegistry] = None,
) -> SaveResult:
    """Save a page set to a file, choosing the codec like load_file()."""
    page_format = _pick_format(path, format_id, registry, loading=False)
    logger.debug(f"Saving {path} as {page_format.description()}")

    result = page_format.save(pages, subpage_index)
    with open(path, "wb") as f:
        f.write(result.data)

    if result.warnings:
        warnings.warn(
            f"Issues saving {os.path.basename(path)}: {'; '.join(result.warnings)}",
            TeletextFormatWarning,
            stacklevel=2,
        )
    return result
