from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class _UrlInput(BaseModel):
    url: str = Field(min_length=1, max_length=2048)

    @field_validator("url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("url must not be blank")
        return value


class ResolvePreviewInput(_UrlInput):
    pass


class ResolvePreviewOutput(BaseModel):
    url: str
    preview: str | None


class ResolveRedirectInput(_UrlInput):
    pass


class ResolveRedirectOutput(BaseModel):
    url: str
    resolved_url: str | None
