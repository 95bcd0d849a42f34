from inline_processor import iXBRLProcessor
from core.models import ParseResult
from core.errors import XBRLParseError
from core.logging import get_logger
from pathlib import Path
from typing import List, Tuple
import io
import zipfile

logger = get_logger(__name__)

INLINE_XBRL_NAMESPACE = b'http://www.xbrl.org/2013/inlineXBRL'
INLINE_SUFFIXES = ('.htm', '.html', '.xhtml')


class XBRLFolderProcessor:
    """Finds the inline XBRL documents of an EDINET submission and parses them as one filing.

    EDINET delivers a submission as a ZIP archive whose ``XBRL/PublicDoc``
    folder holds a header document (contexts, units) and one iXBRL file per
    section of the report.
    """

    def __init__(self, include_non_numeric: bool = False):
        self.include_non_numeric = include_non_numeric

    def process_archive(self, archive: bytes) -> ParseResult:
        """Parse every inline XBRL document inside a submission ZIP."""
        try:
            with zipfile.ZipFile(io.BytesIO(archive)) as zf:
                documents = [
                    (name, zf.read(name))
                    for name in sorted(zf.namelist())
                    if self._is_candidate(name)
                ]
        except zipfile.BadZipFile as e:
            raise XBRLParseError(f"Filing archive is not a valid ZIP file: {e}") from e
        return self._process_documents(documents)

    def process_folder(self, folder: Path) -> ParseResult:
        """Parse every inline XBRL document below ``folder``."""
        folder = Path(folder)
        if not folder.is_dir():
            raise XBRLParseError(f"Not a folder: {folder}")
        documents = [
            (path.relative_to(folder).as_posix(), path.read_bytes())
            for path in sorted(folder.rglob('*'))
            if path.is_file() and self._is_candidate(path.relative_to(folder).as_posix())
        ]
        return self._process_documents(documents)

    def _is_candidate(self, name: str) -> bool:
        lowered = name.lower()
        # AuditDoc holds the auditor's report, which repeats no financial facts
        return lowered.endswith(INLINE_SUFFIXES) and 'auditdoc' not in lowered

    def _process_documents(self, documents: List[Tuple[str, bytes]]) -> ParseResult:
        inline = [content for name, content in documents if INLINE_XBRL_NAMESPACE in content]
        logger.debug("Found %d inline XBRL documents out of %d candidates", len(inline), len(documents))
        if not inline:
            raise XBRLParseError("No inline XBRL documents found in filing")

        processor = iXBRLProcessor(include_non_numeric=self.include_non_numeric)
        processor.load_documents(inline)
        return processor.result()
