"""Configuration schema for a single watch session."""

import os
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class UploadMode(str, Enum):
    """Publish state the remote store applies to uploaded files."""
    PUBLISH = "publish"
    DRAFT = "draft"


class WatchOptions(BaseModel):
    """Options for one watch session."""

    account_id: str = Field(..., description="Remote account the files are uploaded to")
    src: str = Field(..., description="Local directory to watch")
    dest: str = Field(..., description="Remote logical path the directory maps to")

    mode: UploadMode = Field(default=UploadMode.PUBLISH, description="Upload mode")
    cwd: Optional[str] = Field(None, description="Directory used to locate ignore rules")
    remove: bool = Field(default=False, description="Delete remote files when local files are removed")
    disable_initial: bool = Field(default=False, description="Skip the initial full upload")
    notify: Optional[str] = Field(None, description="File to append batched activity lines to")

    @field_validator("account_id", "dest")
    @classmethod
    def validate_not_blank(cls, v):
        """Reject empty identifiers."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("src")
    @classmethod
    def validate_src(cls, v):
        """Source must be an existing directory; stored as an absolute path."""
        path = os.path.abspath(v)
        if not os.path.isdir(path):
            raise ValueError(f"source directory does not exist: {v}")
        return path

    @field_validator("notify")
    @classmethod
    def validate_notify(cls, v):
        """Notify file is stored as an absolute path."""
        if v is None or not v.strip():
            return None
        return os.path.abspath(v)

    @field_validator("mode", mode="before")
    @classmethod
    def validate_mode(cls, v):
        """Unknown modes fall back to publish."""
        if isinstance(v, str) and v.lower() not in {m.value for m in UploadMode}:
            return UploadMode.PUBLISH
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def working_dir(self) -> str:
        """Directory used to resolve ignore rules."""
        return os.path.abspath(self.cwd) if self.cwd else os.getcwd()
