"""Extract stage: decode tabular entries from a downloaded distribution.

Handles:
- Walking archive entries in order, reading only tabular ones
- Decoding workbooks and delimited text into row sets
- Skipping (and recording) entries that fail to decode
"""

from __future__ import annotations

import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path

from ...errors import DecodeFailed
from ...parsers.tabular import HeaderHints, RowSet, decode_tabular, is_tabular

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Result from extracting one distribution."""

    row_sets: list[RowSet] = field(default_factory=list)
    entries_decoded: int = 0
    skipped_entries: list[str] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return sum(len(rs.rows) for rs in self.row_sets)


class ExtractStage:
    """Extract stage for turning an archive into raw row sets."""

    def extract(
        self, path: str | Path, header_hints: HeaderHints | None = None
    ) -> ExtractionResult:
        """Extract all tabular row sets from a zip archive or bare file.

        Args:
            path: Local path of the downloaded distribution
            header_hints: Expected header names, used to find the header row

        Returns:
            ExtractionResult with row sets concatenated in archive order
        """
        path = Path(path)
        result = ExtractionResult()

        # Workbooks are zip containers themselves, so check the extension first
        if is_tabular(path.name):
            self._decode_entry(result, path.name, path.read_bytes, header_hints)
        elif zipfile.is_zipfile(path):
            with zipfile.ZipFile(path) as zf:
                for info in zf.infolist():
                    if info.is_dir() or not is_tabular(info.filename):
                        continue
                    self._decode_entry(
                        result, info.filename, lambda: zf.read(info), header_hints
                    )
        else:
            logger.warning(f"{path.name} is neither an archive nor a tabular file")
            result.skipped_entries.append(path.name)

        logger.info(
            f"Extraction complete for {path.name}: {result.entries_decoded} entries, "
            f"{len(result.row_sets)} row sets, {result.total_rows} rows, "
            f"{len(result.skipped_entries)} skipped"
        )
        return result

    @staticmethod
    def _decode_entry(
        result: ExtractionResult, name: str, read, hints: HeaderHints | None = None
    ) -> None:
        try:
            try:
                data = read()
            except (zipfile.BadZipFile, zlib.error, NotImplementedError, OSError) as e:
                raise DecodeFailed(f"Could not read {name}: {e}", source=name) from e
            row_sets = decode_tabular(name, data, hints)
        except DecodeFailed as e:
            logger.warning(f"Skipping entry {name}: {e}")
            result.skipped_entries.append(name)
            return

        result.entries_decoded += 1
        result.row_sets.extend(row_sets)
