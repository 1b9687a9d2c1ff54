from pydantic import BaseModel


class ContentPart(BaseModel):
    text: str | None = None
    data: bytes | None = None
    mime_type: str | None = None

    @classmethod
    def from_text(cls, text: str) -> "ContentPart":
        return cls(text=text)

    @classmethod
    def from_image(cls, data: bytes, mime_type: str) -> "ContentPart":
        return cls(data=data, mime_type=mime_type)


class ResponsePart(BaseModel):
    text: str | None = None
    data: str | None = None
    mime_type: str | None = None

    @property
    def has_image(self) -> bool:
        return bool(self.data) and (self.mime_type or "image/png").startswith("image/")
