"""
Download Link Pydantic Models
"""

from pydantic import BaseModel


class DownloadLinkResponse(BaseModel):
    download_url: str
    token: str
    expires_in: str


class CleanupResponse(BaseModel):
    removed: int
    message: str
