"""App config via env vars"""

from __future__ import annotations

from pydantic_settings import BaseSettings

from core.uploads import Responder, UploadConfiguration


class Settings(BaseSettings):
    # Content-addressed store root dir (must already exist)
    STORAGE_PATH: str = "/data/uploads"
    # Scratch dir for staged uploads; empty means the system temp dir
    UPLOAD_TEMP_DIR: str = ""

    # Upload rules, JSON lists in the environment e.g. '[".jpg", ".png"]'
    ALLOWED_EXTENSIONS: list[str] = []
    ALLOWED_METHODS: list[str] = ["POST"]
    UPLOAD_ROUTE: str = "/upload"
    COPY_CHUNK_SIZE: int = 4096
    MAX_UPLOAD_FILES: int = 1000

    LOG_LEVEL: str = "INFO"

    model_config = {"env_prefix": "", "case_sensitive": True, "env_file": ".env"}

    def upload_configuration(self, responder: Responder) -> UploadConfiguration:
        return UploadConfiguration(
            storage_path=self.STORAGE_PATH,
            responder=responder,
            allowed_extensions=frozenset(self.ALLOWED_EXTENSIONS),
            temp_dir=self.UPLOAD_TEMP_DIR or None,
            chunk_size=self.COPY_CHUNK_SIZE,
        )


settings = Settings()
