"""On-disk locations for uploads and produced MP3s."""

import os
import time
from typing import Optional


class ArtifactStore:
    """Owns the upload and output directories.

    Files are removed per job by the EvictionManager. purge_stale() catches
    anything a previous process left behind, since job records do not
    survive a restart.
    """

    def __init__(self, upload_dir: str, output_dir: str):
        self.upload_dir = os.path.abspath(upload_dir)
        self.output_dir = os.path.abspath(output_dir)
        os.makedirs(self.upload_dir, exist_ok=True)
        os.makedirs(self.output_dir, exist_ok=True)

    def input_path_for(self, job_id: str, filename: Optional[str] = None) -> str:
        # Only the extension of the client's name is kept
        ext = os.path.splitext(os.path.basename(filename or ""))[1].lower()
        return os.path.join(self.upload_dir, f"{job_id}{ext}")

    def output_path_for(self, job_id: str) -> str:
        return os.path.join(self.output_dir, f"{job_id}.mp3")

    @staticmethod
    def exists(path: Optional[str]) -> bool:
        return bool(path) and os.path.isfile(path)

    @staticmethod
    def remove(path: Optional[str]) -> bool:
        """Delete a file if present. Returns False when there was nothing to delete.

        Other OSErrors (permissions, busy file) propagate to the caller.
        """
        if not path:
            return False
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        return True

    def purge_stale(self, max_age_seconds: float) -> int:
        """Remove files older than max_age_seconds from both directories."""
        now = time.time()
        removed = 0
        for directory in (self.upload_dir, self.output_dir):
            if not os.path.isdir(directory):
                continue
            for entry in os.listdir(directory):
                path = os.path.join(directory, entry)
                if not os.path.isfile(path):
                    continue
                try:
                    if now - os.path.getmtime(path) > max_age_seconds:
                        os.remove(path)
                        removed += 1
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    print(f"Warning: could not purge {path}: {exc}")
        return removed
