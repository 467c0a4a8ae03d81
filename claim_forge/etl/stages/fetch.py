"""Fetch stage: download a selected distribution to local storage."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ...connectors.http_client import HttpClient, HttpRequestError
from ...errors import DownloadFailed
from ...utils.sanitization import filename_from_url
from ..models import DownloadCandidate, EditKind

logger = logging.getLogger(__name__)


class FetchStage:
    """Streams distributions into a download directory.

    Files are named from the URL's final path segment and overwritten on
    re-download, so repeated builds reuse the same paths.
    """

    def __init__(self, client: HttpClient, download_dir: str | Path) -> None:
        self.client = client
        self.download_dir = Path(download_dir)

    def fetch(self, candidate: DownloadCandidate, kind: EditKind) -> Path:
        """Download the candidate and return the local path.

        Raises:
            DownloadFailed: On network errors or non-success responses
        """
        self.download_dir.mkdir(parents=True, exist_ok=True)
        dest = self.download_dir / filename_from_url(candidate.href)
        partial = dest.with_name(dest.name + ".part")

        try:
            size = self.client.download(candidate.href, partial)
        except HttpRequestError as e:
            partial.unlink(missing_ok=True)
            raise DownloadFailed(
                f"Download failed for {kind.value}: {e}",
                kind=kind.value,
                url=candidate.href,
                status_code=e.status_code,
            ) from e
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise DownloadFailed(
                f"Could not write {dest}: {e}",
                kind=kind.value,
                url=candidate.href,
            ) from e

        os.replace(partial, dest)
        logger.info(f"[{kind.value}] downloaded {size:,} bytes to {dest}")
        return dest
