"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # HTTP
    port: int = 3000

    # Upload validation
    max_file_bytes: int = 200 * 1024 * 1024  # 200 MB
    allowed_mime_types: List[str] = [
        "video/mp4",
        "video/quicktime",  # mov
        "video/webm",
        "video/x-matroska",  # mkv
    ]

    # Transient file storage
    upload_dir: str = "./tmp/uploads"
    output_dir: str = "./tmp/outputs"

    # Eviction
    ttl_sec: float = 3600
    sweep_interval_sec: float = 600

    # Encoder
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    audio_bitrate: str = "192k"
    max_concurrent_jobs: int = 2

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
